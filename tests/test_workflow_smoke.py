# tests/test_workflow_smoke.py
import math
import threading

from freezegun import freeze_time

from hn_digest.errors import SummarizationError
from hn_digest.preferences import PreferenceModel
from hn_digest.settings import SettingsManager
from hn_digest.store import ArticleRepository, SqlTagWeightStore
from hn_digest.text_extraction import fetch_and_extract
from hn_digest.workflow import DigestRunner

from conftest import FakeFeed, FakeSender, FakeSettingsStore, FakeSummarizer, no_extract


def item(id, title, score, url="https://example.com/x"):
    return {"id": id, "title": title, "url": url, "score": score, "comments": 3}


def make_runner(db, feed, summarizer, sender=None, article_count="2", tag_store=None, extract=no_extract):
    settings = SettingsManager(FakeSettingsStore())
    settings.load({
        "article_count": article_count,
        "tag_decay_rate": "0.5",
        "min_tag_weight": "0.1",
        "tag_boost_on_like": "0.2",
    })
    prefs = PreferenceModel(tag_store or SqlTagWeightStore(db))
    runner = DigestRunner(
        feed=feed,
        summarizer=summarizer,
        sender=sender or FakeSender(),
        articles=ArticleRepository(db),
        preferences=prefs,
        settings=settings,
        extract=extract,
    )
    return runner, prefs


def test_run_digest_ranks_by_preference_and_persists(db):
    SqlTagWeightStore(db).set("go", 4.0, 3)
    feed = FakeFeed([
        item(1, "Popular thing", 900),
        item(2, "Go 2.0 released", 10),
        item(3, "Something else", 50),
    ])
    summarizer = FakeSummarizer({"Go 2.0 released": ["go", "programming"]})
    sender = FakeSender()
    runner, prefs = make_runner(db, feed, summarizer, sender)

    with freeze_time("2025-01-01 09:00:00"):
        issue = runner.run()

    # decay ran first: 4.0 * 0.5
    assert math.isclose(prefs.weights()["go"], 2.0)
    assert [it["id"] for it in issue["items"]] == [2, 1]
    assert len(sender.sent) == 2
    assert "Go 2.0 released" in sender.sent[0]

    repo = ArticleRepository(db)
    stored = repo.get_by_message_id(issue["items"][0]["message_id"])
    assert stored.id == 2 and stored.tags == ["go", "programming"]
    with freeze_time("2025-01-02 09:00:00"):
        assert sorted(repo.recent_sent_ids(7)) == [1, 2]


def test_recently_sent_articles_are_skipped(db):
    feed = FakeFeed([item(1, "A", 100), item(2, "B", 50)])
    runner, _ = make_runner(db, feed, FakeSummarizer(), article_count="1")
    first = runner.run()
    second = runner.run()
    assert [it["id"] for it in first["items"]] == [1]
    assert [it["id"] for it in second["items"]] == [2]


def test_item_and_summary_failures_are_skipped(db):
    class FlakySummarizer(FakeSummarizer):
        def summarize(self, title, content):
            if title == "bad":
                raise SummarizationError("no json")
            return super().summarize(title, content)

    feed = FakeFeed([item(1, "bad", 500), item(2, "ok", 5), item(3, "gone", 400)])
    feed.failing_ids = {3}
    runner, _ = make_runner(db, feed, FlakySummarizer(), article_count="3")
    issue = runner.run()
    assert [it["id"] for it in issue["items"]] == [2]


def test_decay_failure_does_not_abort_cycle(db):
    from conftest import FakeTagWeightStore
    tags = FakeTagWeightStore({"go": 1.0})
    tags.fail_on = {"go"}
    runner, _ = make_runner(db, FakeFeed([item(1, "A", 10)]), FakeSummarizer(), tag_store=tags)
    issue = runner.run()
    assert [it["id"] for it in issue["items"]] == [1]
    assert tags.rows["go"] == (1.0, 0)


def test_overlapping_runs_are_refused(db):
    entered, release = threading.Event(), threading.Event()

    class SlowFeed(FakeFeed):
        def top_stories(self, limit):
            entered.set()
            release.wait(5)
            return super().top_stories(limit)

    runner, _ = make_runner(db, SlowFeed([item(1, "A", 10)]), FakeSummarizer())
    t = threading.Thread(target=runner.run)
    t.start()
    assert entered.wait(5)
    assert runner.run() == {"skipped": True, "items": []}
    release.set()
    t.join(5)


def test_malformed_url_falls_back_to_title(db):
    feed = FakeFeed([item(1, "Fine", 100), item(2, "Broken link", 50, url="http://exa mple.com/\x00")])
    sender = FakeSender()
    runner, _ = make_runner(db, feed, FakeSummarizer(), sender, extract=fetch_and_extract)
    issue = runner.run()
    assert [it["id"] for it in issue["items"]] == [1, 2]
    assert len(sender.sent) == 2


def test_extractor_crash_does_not_abort_cycle(db):
    seen = []

    class RecordingSummarizer(FakeSummarizer):
        def summarize(self, title, content):
            seen.append(content)
            return super().summarize(title, content)

    def exploding_extract(url):
        raise ValueError("parser blew up")

    runner, _ = make_runner(db, FakeFeed([item(1, "Only story", 10)]), RecordingSummarizer(),
                            extract=exploding_extract)
    issue = runner.run()
    assert [it["id"] for it in issue["items"]] == [1]
    assert seen == ["Only story"]
