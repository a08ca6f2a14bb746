# hn_digest/routers/deps.py
from typing import Optional
from fastapi import Header, HTTPException, Request, status

from ..config import ADMIN_API_KEY


def get_component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"{name} not ready")
    return component


def settings_manager(request: Request):
    return get_component(request, "settings")


def preference_model(request: Request):
    return get_component(request, "preferences")


def article_repository(request: Request):
    return get_component(request, "articles")


def digest_scheduler(request: Request):
    return get_component(request, "scheduler")


def digest_runner(request: Request):
    return get_component(request, "runner")


# --- Simple API key gate for routes that change the schedule or trigger runs ---
def require_admin(request: Request, x_api_key: Optional[str] = Header(default=None)) -> None:
    expected = getattr(request.app.state, "admin_api_key", None) or ADMIN_API_KEY
    if not expected:
        # Fail closed if the key was never configured
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: ADMIN_API_KEY not set."
        )
    if x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
