from fastapi import APIRouter, Depends
from ..logging_setup import get_logger
from ..schema import FeedbackIn
from ..feedback import apply_like
from .deps import article_repository, preference_model

logger = get_logger("hn_digest.routes.feedback")

router = APIRouter(prefix="/feedback", tags=["Feedback"])

@router.post("")
def post_feedback(body: FeedbackIn, articles=Depends(article_repository), preferences=Depends(preference_model)):
    logger.info(f"Feedback received: article={body.article_id} message={body.message_id} signal={body.signal}")
    return apply_like(articles, preferences, article_id=body.article_id, message_id=body.message_id)
