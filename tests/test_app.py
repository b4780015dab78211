"""Application wiring: import, health check and the startup/shutdown hooks."""

from fastapi.testclient import TestClient

import main


def test_health():
    r = TestClient(main.app).get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_lifespan_bootstraps_schema_and_closes_pool(monkeypatch):
    calls = []

    async def fake_close_pool():
        calls.append("close_pool")

    monkeypatch.setattr(main, "init_database", lambda: calls.append("init_database"))
    monkeypatch.setattr(main, "close_pool", fake_close_pool)

    with TestClient(main.app) as client:
        assert calls == ["init_database"]
        assert client.get("/health").status_code == 200

    assert calls == ["init_database", "close_pool"]


def test_upload_mount_stays_inside_root():
    r = TestClient(main.app).get("/uploads/..%2F..%2Fetc%2Fpasswd")
    assert r.status_code == 404
