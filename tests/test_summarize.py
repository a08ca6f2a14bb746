# tests/test_summarize.py
import pytest

from hn_digest.errors import SummarizationError
from hn_digest.summarize import Summarizer, normalize_tags, parse_summary_json


def test_parse_strips_code_fence_and_normalizes_tags():
    text = '```json\n{"summary": "A new Go release.", "tags": ["Go", " programming ", "go", 3, "", "a", "b", "c"]}\n```'
    out = parse_summary_json(text)
    assert out["summary"] == "A new Go release."
    assert out["tags"] == ["go", "programming", "a", "b", "c"]


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"tags": ["x"]}'])
def test_parse_rejects_unusable_output(text):
    with pytest.raises(SummarizationError):
        parse_summary_json(text)


def test_normalize_tags_ignores_non_lists():
    assert normalize_tags("go, rust") == []


def test_without_api_key_falls_back_locally():
    out = Summarizer(api_key="").summarize("Title", "x" * 500)
    assert out == {"summary": "x" * 280, "tags": []}


def test_uses_openai_client(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.return_value.choices = [
        mocker.MagicMock(message=mocker.MagicMock(content='{"summary": "ok", "tags": ["AI"]}'))
    ]
    out = Summarizer(client=client, model="test-model").summarize("T", "body")
    assert out == {"summary": "ok", "tags": ["ai"]}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["response_format"] == {"type": "json_object"}


def test_client_errors_become_summarization_errors(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("rate limited")
    with pytest.raises(SummarizationError):
        Summarizer(client=client).summarize("T", "body")
