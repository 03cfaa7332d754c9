import logging

from fastapi.testclient import TestClient

from database import seed_store
from main import create_app
from security import RateLimiter

from conftest import NOW, make_settings


def test_missing_api_key_is_rejected(app) -> None:
    response = TestClient(app).get("/api/quests")
    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "Authentication required"
    assert body["hint"] == "Use demo_key_12345 for testing"


def test_invalid_api_key_is_rejected(app) -> None:
    response = TestClient(app).get("/api/quests", headers={"X-API-Key": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid API key"


def test_api_key_in_query_string(app) -> None:
    response = TestClient(app).get("/api/quests/1", params={"api_key": "student_key_abcde"})
    assert response.status_code == 200
    assert response.json()["api_info"]["authenticated_with"] == "student_key_abcde"


def test_identity_is_attached(client) -> None:
    body = client.get("/api/status").json()
    assert body["authentication"]["user"] == {"id": 1, "name": "Demo User", "role": "demo"}


def test_public_endpoints_need_no_key(app) -> None:
    anonymous = TestClient(app)
    assert anonymous.get("/").status_code == 200
    health = anonymous.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert anonymous.get("/api/docs").status_code == 200


def test_unknown_route_lists_endpoints(client) -> None:
    response = client.get("/api/nowhere")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Endpoint not found"
    assert "GET /api/quests" in body["available_endpoints"]


def test_rate_limit_returns_429() -> None:
    app = create_app(store=seed_store(NOW), settings=make_settings(rate_limit_max=2), clock=lambda: NOW)
    client = TestClient(app, headers={"X-API-Key": "demo_key_12345"})
    assert client.get("/api/quests").status_code == 200
    assert client.get("/api/categories").status_code == 200
    response = client.get("/api/players")
    assert response.status_code == 429
    assert response.json() == {
        "error": "Too many requests from this IP",
        "retryAfter": "15 minutes",
        "type": "rate_limit_exceeded",
    }


def test_rate_limit_runs_before_auth() -> None:
    app = create_app(store=seed_store(NOW), settings=make_settings(rate_limit_max=1), clock=lambda: NOW)
    client = TestClient(app)
    assert client.get("/api/quests").status_code == 401
    assert client.get("/api/quests").status_code == 429


def test_rate_limiter_window_resets() -> None:
    ticks = [0.0]
    limiter = RateLimiter(max_requests=2, window_seconds=60, clock=lambda: ticks[0])
    assert limiter.hit("a") and limiter.hit("a")
    assert not limiter.hit("a")
    assert limiter.hit("b")
    assert limiter.remaining("a") == 0

    ticks[0] = 61.0
    assert limiter.remaining("a") == 2
    assert limiter.hit("a")


def test_request_counter(client) -> None:
    client.get("/api/quests")
    client.get("/api/players")
    body = client.get("/api/stats").json()
    assert body["total_requests"] == 3


def test_rate_limiter_drops_expired_clients() -> None:
    ticks = [0.0]
    limiter = RateLimiter(max_requests=5, window_seconds=60, clock=lambda: ticks[0])
    for n in range(10):
        limiter.hit(f"10.0.0.{n}")
    assert limiter.tracked_clients() == 10

    ticks[0] = 120.0
    assert limiter.hit("10.0.0.99")
    assert limiter.tracked_clients() == 1


def test_create_app_configures_logging() -> None:
    access = logging.getLogger("uvicorn.access")
    access.setLevel(logging.NOTSET)
    create_app(store=seed_store(NOW), settings=make_settings(), clock=lambda: NOW)
    assert access.level == logging.WARNING
