# tests/test_api.py
from hn_digest.models import Article
from hn_digest.store import ArticleRepository, SqlTagWeightStore

ADMIN = {"X-API-Key": "test-key"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "scheduler": "running"}
    assert r.headers.get("X-Request-ID")


def test_like_boosts_tags_once(client, db):
    ArticleRepository(db).save(Article(id=7, title="t", tags=["go", "cli"], message_id=555))
    SqlTagWeightStore(db).set("go", 1.0, 1)

    r = client.post("/feedback", json={"message_id": 555})
    assert r.status_code == 200
    body = r.json()
    assert body["already_liked"] is False
    assert round(body["weights"]["go"], 6) == 1.2
    assert round(body["weights"]["cli"], 6) == 0.2

    r = client.post("/feedback", json={"article_id": 7})
    assert r.json()["already_liked"] is True
    assert round(SqlTagWeightStore(db).get("go").weight, 6) == 1.2

    prefs = client.get("/prefs").json()
    assert prefs["like_count"] == 1
    assert [t["tag"] for t in prefs["top_tags"]] == ["go", "cli"]


def test_like_unknown_article(client):
    assert client.post("/feedback", json={"article_id": 404}).status_code == 404
    assert client.post("/feedback", json={}).status_code == 422


def test_settings_require_admin(client):
    r = client.put("/settings/digest_time", json={"value": "07:00"})
    assert r.status_code == 401


def test_digest_time_update_retimes_scheduler(client):
    r = client.put("/settings/digest_time", json={"value": "06:15"}, headers=ADMIN)
    assert r.status_code == 200
    sched = client.get("/digest/schedule").json()
    assert sched["time_of_day"] == "06:15"
    assert sched["active_triggers"] == 1
    assert sched["status"] == "running"
    assert client.get("/settings").json()["settings"]["digest_time"] == "06:15"


def test_invalid_setting_rejected(client):
    before = client.get("/digest/schedule").json()["time_of_day"]
    r = client.put("/settings/digest_time", json={"value": "25:00"}, headers=ADMIN)
    assert r.status_code == 422
    assert "hour" in r.json()["detail"]
    assert client.get("/digest/schedule").json()["time_of_day"] == before


def test_unknown_setting_rejected(client):
    r = client.put("/settings/digets_time", json={"value": "garbage"}, headers=ADMIN)
    assert r.status_code == 422
    assert "digets_time" not in client.get("/settings").json()["settings"]


def test_timezone_change_needs_restart(client):
    r = client.put("/settings/timezone", json={"value": "Asia/Tokyo"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["restart_required"] is True


def test_manual_run_is_queued(client):
    r = client.post("/digest/run", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"queued": True}
