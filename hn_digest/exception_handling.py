# hn_digest/exception_handling.py
from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .errors import (
    ArticleNotFoundError,
    InvalidSettingError,
    PreferenceUpdateError,
    ScheduleError,
    SchedulerStoppedError,
    SettingsPersistenceError,
)
from .logging_setup import get_logger

# Keep a separate logger namespace for exceptions
logger = get_logger("hn_digest.exceptions")


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        "HTTP_EXCEPTION",
        extra={"handled": True, "path": str(request.url.path), "status_code": exc.status_code},
    )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def invalid_input_handler(request: Request, exc: Exception):
    # InvalidSettingError / ScheduleError: the caller sent a bad value, nothing was persisted
    logger.info("INVALID_INPUT", extra={"handled": True, "path": str(request.url.path), "error": str(exc)})
    return JSONResponse({"detail": str(exc)}, status_code=422)


async def not_found_handler(request: Request, exc: ArticleNotFoundError):
    logger.info("NOT_FOUND", extra={"handled": True, "path": str(request.url.path), "error": str(exc)})
    return JSONResponse({"detail": str(exc)}, status_code=404)


async def unavailable_handler(request: Request, exc: Exception):
    # Persistence failed; prior state is intact so the client may retry
    logger.error("PERSISTENCE_FAILED", extra={"handled": True, "path": str(request.url.path), "error": str(exc)})
    return JSONResponse({"detail": str(exc)}, status_code=503)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "UNHANDLED_EXCEPTION",
        extra={"handled": False, "path": str(request.url.path)},
    )
    return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers in one place.
    Call from hn_digest/main.py after creating the FastAPI app.
    """
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(InvalidSettingError, invalid_input_handler)
    app.add_exception_handler(ScheduleError, invalid_input_handler)
    app.add_exception_handler(ArticleNotFoundError, not_found_handler)
    app.add_exception_handler(PreferenceUpdateError, unavailable_handler)
    app.add_exception_handler(SettingsPersistenceError, unavailable_handler)
    app.add_exception_handler(SchedulerStoppedError, unavailable_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
