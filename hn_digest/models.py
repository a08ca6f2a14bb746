from typing import Optional, List
from sqlmodel import SQLModel, Field, Column, JSON
from datetime import datetime, timezone

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Article(SQLModel, table=True):
    # HN item id; assigned by the feed, never auto-incremented
    id: int = Field(primary_key=True)
    title: str = ""
    url: str = ""
    summary: str = ""
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    score: int = 0          # HN points at fetch time
    comments: int = 0       # HN descendants
    fetched_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = Field(default=None, index=True)
    message_id: Optional[int] = Field(default=None, index=True)
    liked: bool = False

class ArticleLike(SQLModel, table=True):
    article_id: int = Field(primary_key=True)
    liked_at: datetime = Field(default_factory=utcnow)

class TagWeight(SQLModel, table=True):
    tag: str = Field(primary_key=True)
    weight: float = 0.0
    count: int = 0  # mutations observed; diagnostics only

class Setting(SQLModel, table=True):
    key: str = Field(primary_key=True)
    value: str
