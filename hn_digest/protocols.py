"""Narrow interfaces the core consumes.

The SQLModel-backed implementations live in ``store.py``; tests use the
in-memory fakes from ``tests/conftest.py``.
"""

from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .models import TagWeight


@runtime_checkable
class TagWeightStore(Protocol):
    """Durable tag -> (weight, count) mapping."""

    def get(self, tag: str) -> Optional[TagWeight]:
        ...

    def set(self, tag: str, weight: float, count: int) -> None:
        ...

    def delete(self, tag: str) -> None:
        ...

    def get_all(self) -> Dict[str, TagWeight]:
        ...


@runtime_checkable
class SettingsStore(Protocol):
    """Durable key/value settings."""

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class ContentFeed(Protocol):
    """Producer of candidate stories."""

    def top_stories(self, limit: int) -> List[int]:
        ...

    def get_item(self, item_id: int) -> Optional[dict]:
        ...


class ArticleSummarizer(Protocol):
    def summarize(self, title: str, content: str) -> dict:
        """Return ``{"summary": str, "tags": list[str]}``."""
        ...


class MessageSender(Protocol):
    def send(self, text: str) -> Optional[int]:
        """Deliver one message; return the platform message id if any."""
        ...
