"""Tests for health/info, the error envelope, rate limiting and access logging."""

from __future__ import annotations

from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from psgc_shared import db
from psgc_shared.config import settings

from psgc_api import __version__


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["version"] == __version__
    assert "timestamp" in body


def test_info(client):
    body = client.get("/api").json()
    assert body["version"] == __version__
    assert body["endpoints"]["barangays"] == "/api/v1/barangays"


def test_unknown_route(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found", "message": "Route GET /api/v1/nope not found"}


def _broken_store():
    raise RuntimeError("store exploded")


def test_unhandled_error_hides_message(app, monkeypatch):
    from psgc_api.dependencies import get_store

    monkeypatch.setattr(settings, "debug", False)
    app.dependency_overrides[get_store] = _broken_store
    resp = TestClient(app, raise_server_exceptions=False).get("/api/v1/regions")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_unhandled_error_debug_message(app, monkeypatch):
    from psgc_api.dependencies import get_store

    monkeypatch.setattr(settings, "debug", True)
    app.dependency_overrides[get_store] = _broken_store
    resp = TestClient(app, raise_server_exceptions=False).get("/api/v1/regions")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error", "message": "store exploded"}


def test_missing_database_is_service_unavailable(tmp_path, monkeypatch):
    from psgc_api.app import create_app

    monkeypatch.setattr(settings, "duckdb_path", str(tmp_path / "absent.duckdb"))
    db.reset_duckdb_connection()
    client = TestClient(create_app())

    resp = client.get("/api/v1/regions")
    assert resp.status_code == 503
    body = resp.json()
    assert body["error"] == "Service unavailable"
    assert "psgc import" in body["message"]
    assert client.get("/api/health").status_code == 200
    assert not (tmp_path / "absent.duckdb").exists()


class TestRateLimit:
    def test_limits_api_routes(self, app, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 2)
        client = TestClient(app)

        first = client.get("/api/v1/regions")
        assert first.headers["RateLimit-Limit"] == "2"
        assert first.headers["RateLimit-Remaining"] == "1"
        assert client.get("/api/v1/regions").status_code == 200

        resp = client.get("/api/v1/regions")
        assert resp.status_code == 429
        assert resp.json()["error"] == "Too many requests"
        assert int(resp.headers["Retry-After"]) > 0
        assert resp.headers["RateLimit-Remaining"] == "0"

    def test_health_is_exempt(self, app, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        client = TestClient(app)

        assert client.get("/api/v1/regions").status_code == 200
        assert client.get("/api/v1/regions").status_code == 429
        assert client.get("/api/health").status_code == 200


def _completed(logs):
    return [e for e in logs if e["event"] == "request_completed"]


class TestRequestLogging:
    def test_logs_route_template_and_client(self, client):
        with capture_logs() as logs:
            client.get("/api/v1/regions/999999999")
        (event,) = _completed(logs)
        assert event["route"] == "/api/v1/regions/{code}"
        assert event["path"] == "/api/v1/regions/999999999"
        assert event["status"] == 404
        assert event["client"] == "testclient"
        assert event["log_level"] == "warning"

    def test_ok_request_logs_at_info(self, client):
        with capture_logs() as logs:
            client.get("/api/v1/regions")
        (event,) = _completed(logs)
        assert event["status"] == 200
        assert event["log_level"] == "info"

    def test_rate_limited_request_is_logged(self, app, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        client = TestClient(app)
        client.get("/api/v1/regions")
        with capture_logs() as logs:
            assert client.get("/api/v1/regions").status_code == 429
        limited = [e for e in logs if e["event"] == "rate_limited"]
        assert limited[0]["client"] == "testclient"
        (event,) = _completed(logs)
        assert event["status"] == 429
        assert event["route"] is None
