# hn_digest/sources.py
"""
Hacker News content feed.

Uses the public Firebase API (no key):
  - /v0/topstories.json  -> up to 500 story ids, best first
  - /v0/item/<id>.json   -> one item

The digest workflow only needs ids, title, url, points and comment count, so
``get_item`` returns a small dict with exactly those fields.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import requests

from .config import FETCH_TIMEOUT_SECS
from .logging_setup import get_logger

logger = get_logger("hn_digest.sources")

HN_BASE_URL = "https://hacker-news.firebaseio.com"


class HackerNewsClient:
    name = "hacker_news"

    def __init__(self, base_url: str = HN_BASE_URL, timeout: float = FETCH_TIMEOUT_SECS,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", "HNDigest/1.0")

    def _get_json(self, path: str):
        r = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def top_stories(self, limit: int) -> List[int]:
        ids = self._get_json("/v0/topstories.json") or []
        return [int(i) for i in ids[: max(0, limit)]]

    def get_item(self, item_id: int) -> Optional[Dict]:
        data = self._get_json(f"/v0/item/{item_id}.json")
        if not data or data.get("deleted") or data.get("dead"):
            return None
        return {
            "id": int(data["id"]),
            "title": data.get("title", "") or "",
            "url": data.get("url", "") or "",
            "score": int(data.get("score") or 0),
            "comments": int(data.get("descendants") or 0),
        }


def discussion_url(item_id: int) -> str:
    return f"https://news.ycombinator.com/item?id={item_id}"
