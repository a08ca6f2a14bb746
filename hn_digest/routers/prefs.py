from fastapi import APIRouter, Depends, Query
from ..logging_setup import get_logger
from ..schema import PrefsOut, TagWeightOut
from .deps import article_repository, preference_model

logger = get_logger("hn_digest.routes.prefs")

router = APIRouter(prefix="/prefs", tags=["Preferences"])

@router.get("", response_model=PrefsOut)
def get_prefs(limit: int = Query(10, ge=1, le=100), articles=Depends(article_repository),
              preferences=Depends(preference_model)):
    top = preferences.top_tags(limit)
    return PrefsOut(
        like_count=articles.like_count(),
        top_tags=[TagWeightOut(tag=tw.tag, weight=round(tw.weight, 4), count=tw.count) for tw in top],
    )
