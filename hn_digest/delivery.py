# hn_digest/delivery.py
from typing import Optional
import os

import requests
from jinja2 import Template

from .config import SEND_MODE, TELEGRAM_CHAT_ID, TELEGRAM_TOKEN
from .errors import DeliveryError
from .logging_setup import get_logger
from .sources import discussion_url

logger = get_logger("hn_digest.delivery")

REQUESTS_TIMEOUT = float(os.getenv("REQUESTS_TIMEOUT", "15"))
TELEGRAM_API = "https://api.telegram.org"

# Telegram HTML parse mode: only a handful of tags, everything else escaped
ARTICLE_TPL = Template(
    "📰 <b>{{ title | e }}</b>\n\n"
    "{% if summary %}<i>{{ summary | e }}</i>\n\n{% endif %}"
    "⬆️ {{ score }} points | 💬 {{ comments }} comments\n"
    "{% if url %}🔗 <a href=\"{{ url | e }}\">Article</a> | {% endif %}"
    "<a href=\"{{ hn_url }}\">HN Discussion</a>"
)

def render_article(article) -> str:
    return ARTICLE_TPL.render(
        title=article.title,
        summary=article.summary,
        score=article.score,
        comments=article.comments,
        url=article.url,
        hn_url=discussion_url(article.id),
    )


class Sender:
    """
    Delivers one message per article.
    Honors SEND_MODE = console | telegram and returns the Telegram message id
    (None in console mode), which the feedback route uses to find the article.
    """

    def __init__(self, mode: str = SEND_MODE, token: str = TELEGRAM_TOKEN, chat_id: str = TELEGRAM_CHAT_ID,
                 session: Optional[requests.Session] = None):
        self.mode = (mode or "console").lower()
        self.token = token
        self.chat_id = chat_id
        self.session = session or requests.Session()

    def send(self, text: str) -> Optional[int]:
        if self.mode == "console":
            _send_console(text)
            return None
        if self.mode == "telegram":
            return self._send_via_telegram(text)
        logger.warning(f"Unknown SEND_MODE={self.mode!r}; falling back to console.")
        _send_console(text)
        return None

    def _send_via_telegram(self, text: str) -> int:
        if not self.token or not self.chat_id:
            raise DeliveryError("TELEGRAM_TOKEN and TELEGRAM_CHAT_ID are required while SEND_MODE=telegram")
        try:
            r = self.session.post(
                f"{TELEGRAM_API}/bot{self.token}/sendMessage",
                data={
                    "chat_id": self.chat_id,
                    "text": text,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": "true",
                },
                timeout=REQUESTS_TIMEOUT,
            )
        except requests.RequestException as e:
            raise DeliveryError(f"Telegram request failed: {e}") from e
        if r.status_code >= 300:
            raise DeliveryError(f"Telegram {r.status_code}: {r.text}")
        body = r.json()
        if not body.get("ok"):
            raise DeliveryError(f"Telegram rejected message: {body.get('description', '')}")
        return int(body["result"]["message_id"])


def _send_console(text: str) -> None:
    preview = text if len(text) < 1200 else text[:1200] + "…"
    print(f"[DIGEST console]\n{preview}\n---\n")
