from fastapi import APIRouter, Request
from ..logging_setup import get_logger

logger = get_logger("hn_digest.routes.health")

router = APIRouter()

@router.get("/health")
def health(request: Request):
    logger.debug("Health check invoked")
    scheduler = getattr(request.app.state, "scheduler", None)
    return {"status": "ok", "scheduler": scheduler.status.value if scheduler else "absent"}
