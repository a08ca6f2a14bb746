# tests/conftest.py
import os
import tempfile

# Before any hn_digest import: keep logs and the default DB out of the project tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="hn_digest_logs_"))
os.environ.setdefault("DB_FILE", os.path.join(tempfile.mkdtemp(prefix="hn_digest_db_"), "test.db"))
os.environ["ADMIN_API_KEY"] = "test-key"
os.environ["SEND_MODE"] = "console"
os.environ["OPENAI_API_KEY"] = ""

import pytest

from hn_digest.models import TagWeight


class FakeTagWeightStore:
    """In-memory TagWeightStore. ``fail_on`` makes writes of those tags raise."""

    def __init__(self, weights=None):
        self.rows = {}
        for tag, w in (weights or {}).items():
            self.rows[tag] = (float(w), 0)
        self.fail_on = set()
        self.fail_reads = False
        self.writes = []

    def get(self, tag):
        if self.fail_reads:
            raise RuntimeError("store offline")
        if tag not in self.rows:
            return None
        w, c = self.rows[tag]
        return TagWeight(tag=tag, weight=w, count=c)

    def set(self, tag, weight, count):
        if tag in self.fail_on:
            raise RuntimeError(f"write failed for {tag}")
        self.writes.append((tag, weight, count))
        self.rows[tag] = (weight, count)

    def delete(self, tag):
        if tag in self.fail_on:
            raise RuntimeError(f"delete failed for {tag}")
        self.rows.pop(tag, None)

    def get_all(self):
        if self.fail_reads:
            raise RuntimeError("store offline")
        return {t: TagWeight(tag=t, weight=w, count=c) for t, (w, c) in self.rows.items()}


class FakeSettingsStore:
    def __init__(self, values=None):
        self.values = dict(values or {})
        self.fail_writes = False

    def get(self, key):
        if key in self.values:
            return self.values[key], True
        return None, False

    def set(self, key, value):
        if self.fail_writes:
            raise RuntimeError("disk full")
        self.values[key] = value


class FakeTriggerBackend:
    """Records daily entries; tests fire them by hand."""

    def __init__(self):
        self.jobs = {}
        self.started = False
        self.shutdowns = []
        self.max_active = 0
        self._n = 0

    def add_daily(self, hour, minute, tz, fn):
        self._n += 1
        handle = f"job-{self._n}"
        self.jobs[handle] = (hour, minute, tz, fn)
        self.max_active = max(self.max_active, len(self.jobs))
        return handle

    def remove(self, handle):
        self.jobs.pop(handle, None)

    def start(self):
        self.started = True

    def shutdown(self, wait=True):
        self.shutdowns.append(wait)

    def active_count(self):
        return len(self.jobs)

    def next_fire_time(self, handle):
        return None

    def fire_all(self):
        for _, _, _, fn in list(self.jobs.values()):
            fn()


class FakeFeed:
    def __init__(self, items):
        self.items = {it["id"]: it for it in items}
        self.order = [it["id"] for it in items]
        self.failing_ids = set()

    def top_stories(self, limit):
        return self.order[:limit]

    def get_item(self, item_id):
        if item_id in self.failing_ids:
            raise RuntimeError("HN timeout")
        return self.items.get(item_id)


class FakeSummarizer:
    def __init__(self, tags_by_title=None):
        self.tags_by_title = tags_by_title or {}

    def summarize(self, title, content):
        return {"summary": f"about {title}", "tags": list(self.tags_by_title.get(title, []))}


class FakeSender:
    def __init__(self):
        self.sent = []

    def send(self, text):
        self.sent.append(text)
        return 1000 + len(self.sent)


def no_extract(url):
    return "", None


@pytest.fixture()
def tag_store():
    return FakeTagWeightStore()


@pytest.fixture()
def settings_store():
    return FakeSettingsStore()


@pytest.fixture()
def fake_backend():
    return FakeTriggerBackend()


@pytest.fixture()
def db():
    from hn_digest.store import Database
    database = Database("sqlite://")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture()
def client(db):
    from fastapi.testclient import TestClient
    from hn_digest.main import create_app

    app = create_app()
    app.state.db = db
    app.state.feed = FakeFeed([])
    app.state.summarizer = FakeSummarizer()
    app.state.sender = FakeSender()
    app.state.admin_api_key = "test-key"
    with TestClient(app) as c:
        yield c
