from typing import Dict, Optional

from .errors import ArticleNotFoundError, PreferenceUpdateError
from .logging_setup import get_logger
from .preferences import PreferenceModel
from .store import ArticleRepository

logger = get_logger("hn_digest.feedback")


def apply_like(
    articles: ArticleRepository,
    preferences: PreferenceModel,
    article_id: Optional[int] = None,
    message_id: Optional[int] = None,
) -> Dict:
    """
    Record a like for a delivered article and boost its tags.

    The article is found by id or by the id of the message it was delivered in.
    Liking the same article twice is a no-op. If the boost fails the like row
    is removed again so the feedback can be retried.
    """
    if article_id is not None:
        article = articles.get(article_id)
    elif message_id is not None:
        article = articles.get_by_message_id(message_id)
    else:
        raise ValueError("article_id or message_id is required")
    if article is None:
        raise ArticleNotFoundError(f"no article for article_id={article_id} message_id={message_id}")

    if not articles.record_like(article.id):
        logger.info("LIKE_DUPLICATE", extra={"article_id": article.id})
        return {"ok": True, "article_id": article.id, "already_liked": True, "weights": {}}

    try:
        weights = preferences.apply_like(article.tags or [])
    except PreferenceUpdateError:
        articles.unrecord_like(article.id)
        raise

    logger.info("ARTICLE_LIKED", extra={"article_id": article.id, "message_id": message_id, "tags": article.tags})
    return {"ok": True, "article_id": article.id, "already_liked": False, "weights": weights}
