# tests/test_sources.py
from hn_digest.sources import HackerNewsClient, discussion_url


def _response(mocker, payload):
    resp = mocker.MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


def test_top_stories_limit(mocker):
    session = mocker.MagicMock()
    session.headers = {}
    session.get.return_value = _response(mocker, [5, 4, 3, 2, 1])
    client = HackerNewsClient(base_url="http://hn.test/", session=session)
    assert client.top_stories(3) == [5, 4, 3]
    assert session.get.call_args.args[0] == "http://hn.test/v0/topstories.json"


def test_get_item_shape(mocker):
    session = mocker.MagicMock()
    session.headers = {}
    session.get.return_value = _response(mocker, {
        "id": 8863, "title": "My YC app", "url": "http://x", "score": 111, "descendants": 71, "type": "story",
    })
    it = HackerNewsClient(session=session).get_item(8863)
    assert it == {"id": 8863, "title": "My YC app", "url": "http://x", "score": 111, "comments": 71}


def test_dead_or_missing_items_are_none(mocker):
    session = mocker.MagicMock()
    session.headers = {}
    session.get.side_effect = [_response(mocker, None), _response(mocker, {"id": 1, "dead": True})]
    client = HackerNewsClient(session=session)
    assert client.get_item(1) is None
    assert client.get_item(1) is None


def test_discussion_url():
    assert discussion_url(42) == "https://news.ycombinator.com/item?id=42"
