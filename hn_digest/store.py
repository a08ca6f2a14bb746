"""
store.py
========
This module is the *database gateway* for the app.

It does four things:
1) Creates a connection "engine" to the database (wrapped in ``Database``).
2) Creates tables (once) based on the SQLModel classes in models.py.
3) Provides a helper to open a database "Session" (a unit of work/transaction).
4) Implements the narrow storage interfaces from protocols.py on top of it:
   ``SqlTagWeightStore``, ``SqlSettingsStore`` and ``ArticleRepository``.

Nothing here owns the lifecycle of the data: the hosting process builds one
``Database`` and injects it (see lifespan.py).
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, func, select

from .config import DB_FILE
from .models import Article, ArticleLike, Setting, TagWeight, utcnow

# "sqlite:///hn_digest.db" means:
#   - "sqlite" driver
#   - "///" local file path (relative to current working directory)
#   - "hn_digest.db" is the file name
DB_URL = f"sqlite:///{DB_FILE}"


class Database:
    """
    Owns one SQLAlchemy engine.

    ``Database("sqlite://")`` gives an in-memory database shared by every
    session (StaticPool keeps the single connection alive), which is what the
    tests use.
    """

    def __init__(self, url: str = DB_URL, echo: bool = False):
        self.url = url
        if url in ("sqlite://", "sqlite:///:memory:"):
            self.engine = create_engine(
                url, echo=echo, connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        elif url.startswith("sqlite"):
            # The scheduler thread and the request threads share the engine
            self.engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        else:
            self.engine = create_engine(url, echo=echo)

    def init_db(self) -> None:
        """
        Create all tables for the SQLModel classes in models.py.

        Safe to call on every startup; it won't drop data. It only creates missing tables.
        """
        from . import models  # noqa: F401  (import just to register models with SQLModel)

        SQLModel.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """
        Open a Session bound to our engine.

        Usage pattern:
          with db.get_session() as session:
              session.add(obj)
              session.commit()
        """
        return Session(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


class SqlTagWeightStore:
    """TagWeightStore backed by the ``tagweight`` table."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, tag: str) -> Optional[TagWeight]:
        with self.db.get_session() as s:
            return s.get(TagWeight, tag)

    def set(self, tag: str, weight: float, count: int) -> None:
        with self.db.get_session() as s:
            s.merge(TagWeight(tag=tag, weight=weight, count=count))
            s.commit()

    def delete(self, tag: str) -> None:
        with self.db.get_session() as s:
            row = s.get(TagWeight, tag)
            if row is not None:
                s.delete(row)
                s.commit()

    def get_all(self) -> Dict[str, TagWeight]:
        with self.db.get_session() as s:
            return {tw.tag: tw for tw in s.exec(select(TagWeight)).all()}


class SqlSettingsStore:
    """SettingsStore backed by the ``setting`` table."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        with self.db.get_session() as s:
            row = s.get(Setting, key)
            if row is None:
                return None, False
            return row.value, True

    def set(self, key: str, value: str) -> None:
        with self.db.get_session() as s:
            s.merge(Setting(key=key, value=value))
            s.commit()


class ArticleRepository:
    """Article and like bookkeeping used by the digest run and the feedback route."""

    def __init__(self, db: Database):
        self.db = db

    def save(self, article: Article) -> None:
        with self.db.get_session() as s:
            s.merge(article)
            s.commit()

    def get(self, article_id: int) -> Optional[Article]:
        with self.db.get_session() as s:
            return s.get(Article, article_id)

    def get_by_message_id(self, message_id: int) -> Optional[Article]:
        with self.db.get_session() as s:
            return s.exec(select(Article).where(Article.message_id == message_id)).first()

    def mark_sent(self, article_id: int, message_id: Optional[int], sent_at: Optional[datetime] = None) -> None:
        with self.db.get_session() as s:
            article = s.get(Article, article_id)
            if article is None:
                return
            article.sent_at = sent_at or utcnow()
            article.message_id = message_id
            s.add(article)
            s.commit()

    def recent_sent_ids(self, days: int, now: Optional[datetime] = None) -> List[int]:
        cutoff = (now or utcnow()) - timedelta(days=days)
        with self.db.get_session() as s:
            return list(s.exec(select(Article.id).where(Article.sent_at > cutoff)).all())

    def record_like(self, article_id: int) -> bool:
        """Insert a like row and flag the article. Returns False if it was already liked."""
        with self.db.get_session() as s:
            if s.get(ArticleLike, article_id) is not None:
                return False
            s.add(ArticleLike(article_id=article_id))
            article = s.get(Article, article_id)
            if article is not None:
                article.liked = True
                s.add(article)
            s.commit()
            return True

    def unrecord_like(self, article_id: int) -> None:
        with self.db.get_session() as s:
            like = s.get(ArticleLike, article_id)
            if like is not None:
                s.delete(like)
            article = s.get(Article, article_id)
            if article is not None:
                article.liked = False
                s.add(article)
            s.commit()

    def like_count(self) -> int:
        with self.db.get_session() as s:
            return s.exec(select(func.count()).select_from(ArticleLike)).one()
