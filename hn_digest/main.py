# hn_digest/main.py
from fastapi import FastAPI

from .logging_setup import setup_logging, get_logger
from .middleware import RequestContextMiddleware
from .exception_handling import register_exception_handlers
from .lifespan import lifespan

from .routers import health, feedback, prefs, settings, digest

setup_logging()  # <-- set up logging ASAP
logger = get_logger("hn_digest.main")

def create_app() -> FastAPI:
    app = FastAPI(title="HN Digest", version="0.1.0", lifespan=lifespan)
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(feedback.router)
    app.include_router(prefs.router)
    app.include_router(settings.router)
    app.include_router(digest.router)
    return app

app = create_app()
