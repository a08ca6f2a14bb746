# hn_digest/lifespan.py
from contextlib import asynccontextmanager
from fastapi import FastAPI

from .config import SETTINGS_DEFAULTS
from .delivery import Sender
from .logging_setup import get_logger
from .preferences import PreferenceModel
from .scheduler import DigestScheduler
from .settings import SettingsManager
from .sources import HackerNewsClient
from .store import ArticleRepository, Database, SqlSettingsStore, SqlTagWeightStore
from .summarize import Summarizer
from .workflow import DigestRunner

logger = get_logger("hn_digest.lifespan")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- Startup ----
    # Collaborators already on app.state (tests, alternative hosts) are used as-is
    logger.info("APP STARTUP")
    state = app.state
    db = getattr(state, "db", None) or Database()
    db.init_db()
    state.db = db

    settings = SettingsManager(SqlSettingsStore(db))
    settings.load(SETTINGS_DEFAULTS)
    state.settings = settings

    state.preferences = PreferenceModel(
        SqlTagWeightStore(db),
        boost=settings.get_float("tag_boost_on_like", 0.2),
        decay_rate=settings.get_float("tag_decay_rate", 0.02),
        min_weight=settings.get_float("min_tag_weight", 0.1),
    )
    state.articles = ArticleRepository(db)
    state.runner = DigestRunner(
        feed=getattr(state, "feed", None) or HackerNewsClient(),
        summarizer=getattr(state, "summarizer", None) or Summarizer(),
        sender=getattr(state, "sender", None) or Sender(),
        articles=state.articles,
        preferences=state.preferences,
        settings=settings,
    )

    # Bad timezone / digest_time in the settings table is fatal here
    scheduler = DigestScheduler(
        settings.get_str("timezone", "UTC"),
        settings.get_str("digest_time", "09:00"),
        state.runner.run,
    )
    scheduler.start()
    state.scheduler = scheduler
    logger.info(f"Scheduler started: daily at {scheduler.time_of_day} {scheduler.timezone_name}")

    # Hand control to the application
    yield

    # ---- Shutdown ----
    logger.info("APP SHUTDOWN")
    scheduler.stop()
    state.scheduler = None
    db.dispose()
