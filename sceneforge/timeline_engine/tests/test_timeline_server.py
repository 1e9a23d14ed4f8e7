from fastapi.testclient import TestClient

from sceneforge.timeline_engine.server import create_app


def test_health_reports_runtime_config(monkeypatch):
    monkeypatch.setenv("SCENEFORGE_TIMELINE_TRACK_PADDING", "16")
    client = TestClient(create_app())

    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["config"]["track_padding"] == 16


def test_app_mounts_timeline_routes():
    client = TestClient(create_app())
    resp = client.get("/timeline/ticks", params={"total_duration": 30})
    assert resp.status_code == 200
    assert [t["time_seconds"] for t in resp.json()] == [0]
