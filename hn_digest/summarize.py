# hn_digest/summarize.py
from __future__ import annotations
from typing import Dict, List, Optional
import json
import re

from openai import OpenAI

from .config import OPENAI_API_KEY, OPENAI_MODEL
from .errors import SummarizationError
from .logging_setup import get_logger

logger = get_logger("hn_digest.summarize")

MAX_TAGS = 5

USER_PROMPT = """
Summarize this article in 1-2 sentences of plain English and provide 3-5 lowercase
tags categorizing the topic.

Return strict JSON with keys:
  - summary: string
  - tags: array of 3-5 lowercase strings

TITLE: {title}
CONTENT:
{content}
""".strip()

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\n?|\n?```$")

def _truncate(s: str, max_chars: int = 9000) -> str:
    return s[:max_chars] if s else s

def normalize_tags(raw) -> List[str]:
    """Lowercase, trim, dedupe, keep order, cap at MAX_TAGS."""
    if not isinstance(raw, list):
        return []
    tags = []
    for t in raw:
        if not isinstance(t, str):
            continue
        t = t.strip().lower()
        if t and t not in tags:
            tags.append(t)
    return tags[:MAX_TAGS]

def parse_summary_json(text: str) -> Dict:
    text = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SummarizationError(f"summary is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise SummarizationError("summary JSON is not an object")
    summary = (data.get("summary") or "").strip()
    if not summary:
        raise SummarizationError("summary JSON has no summary")
    return {"summary": summary, "tags": normalize_tags(data.get("tags"))}


class Summarizer:
    """
    OpenAI-backed summary + tags for one article.

    Without an API key it degrades to a local fallback (first 280 chars, no
    tags) so the digest still runs in development.
    """

    def __init__(self, api_key: str = OPENAI_API_KEY, model: str = OPENAI_MODEL,
                 client: Optional[OpenAI] = None):
        self.model = model
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> Optional[OpenAI]:
        if self._client is None and self._api_key:
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def summarize(self, title: str, content: str) -> Dict:
        client = self._get_client()
        if client is None:
            return {"summary": (content or title or "")[:280], "tags": []}

        try:
            resp = client.chat.completions.create(
                model=self.model,
                temperature=0.2,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": "Respond with valid JSON only."},
                    {"role": "user", "content": USER_PROMPT.format(title=title, content=_truncate(content))},
                ],
            )
        except Exception as e:
            logger.warning("OPENAI_SUMMARY_FAILED", extra={"title": title[:120], "error": type(e).__name__})
            raise SummarizationError(f"summarizer call failed: {e}") from e

        return parse_summary_json(resp.choices[0].message.content)
