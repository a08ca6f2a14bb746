# hn_digest/text_extraction.py
from __future__ import annotations
from typing import Tuple, Optional

import httpx
import trafilatura
from trafilatura.metadata import extract_metadata
from bs4 import BeautifulSoup

from .config import FETCH_TIMEOUT_SECS
from .logging_setup import get_logger

logger = get_logger("hn_digest.text_extraction")

MAX_CHARS = 9000

def fetch_and_extract(url: str, timeout: float = FETCH_TIMEOUT_SECS) -> Tuple[str, Optional[str]]:
    """
    Fetches URL and returns (main_text, title_guess). Uses trafilatura,
    falls back to BeautifulSoup. Returns ("", None) when the page can't be fetched;
    the digest then summarizes from the HN title alone.
    """
    headers = {"User-Agent": "HNDigest/1.0 (+https://news.ycombinator.com)"}
    try:
        with httpx.Client(follow_redirects=True, timeout=timeout) as client:
            r = client.get(url, headers=headers)
            r.raise_for_status()
            html = r.text
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("FETCH_HTML_FAILED", extra={"url": url, "error": type(e).__name__})
        return "", None

    text = trafilatura.extract(html, include_comments=False, favor_recall=True) or ""
    if text:
        md = extract_metadata(html)
        return text[:MAX_CHARS], (md.title if md and md.title else None)

    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.string.strip() if soup.title and soup.title.string else None
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.stripped_strings)[:MAX_CHARS], title
