# tests/test_delivery.py
import pytest

from hn_digest.delivery import Sender, render_article
from hn_digest.errors import DeliveryError
from hn_digest.models import Article


def test_render_escapes_html():
    html = render_article(Article(id=3, title="<script>", summary="a & b", url="http://x?a=1&b=2", score=5, comments=1))
    assert "&lt;script&gt;" in html
    assert "a &amp; b" in html
    assert "https://news.ycombinator.com/item?id=3" in html
    assert "5 points" in html


def test_console_mode(capsys):
    assert Sender(mode="console").send("hello") is None
    assert "hello" in capsys.readouterr().out


def test_telegram_mode_returns_message_id(mocker):
    session = mocker.MagicMock()
    session.post.return_value.status_code = 200
    session.post.return_value.json.return_value = {"ok": True, "result": {"message_id": 77}}
    sender = Sender(mode="telegram", token="T", chat_id="42", session=session)
    assert sender.send("<b>hi</b>") == 77
    data = session.post.call_args.kwargs["data"]
    assert data["chat_id"] == "42" and data["parse_mode"] == "HTML"


def test_telegram_errors(mocker):
    session = mocker.MagicMock()
    session.post.return_value.status_code = 400
    session.post.return_value.text = "Bad Request"
    with pytest.raises(DeliveryError):
        Sender(mode="telegram", token="T", chat_id="42", session=session).send("x")
    with pytest.raises(DeliveryError):
        Sender(mode="telegram", token="", chat_id="").send("x")
