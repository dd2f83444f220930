from fastapi.testclient import TestClient

from sensorhub.main import app


def test_health_and_root(client):
    health = client.get("/api/health")
    root = client.get("/")

    assert health.status_code == 200
    assert health.json()["status"] == "OK"
    assert root.json()["endpoints"]["auth"] == "/api/auth"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_security_headers_are_set(client):
    response = client.get("/api/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_lifespan_owns_the_session_reaper():
    with TestClient(app) as running:
        reaper = app.state.session_reaper
        assert reaper.running
        assert running.get("/api/ready").json() == {"status": "ready"}

    assert not reaper.running
