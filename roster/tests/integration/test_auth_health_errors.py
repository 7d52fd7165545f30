"""Integration tests: X-User-Id auth, health endpoints, error payload shape."""
import pytest


@pytest.mark.integration
async def test_missing_user_header_returns_401_with_structured_body(client, world):
    r = await client.get("/api/buildings/with-shifts")
    assert r.status_code == 401, r.text
    data = r.json()
    assert data["errorCode"] == "AUTH_REQUIRED"
    assert set(data) == {"errorCode", "userMessage", "developerMessage", "correlationId"}
    assert data["correlationId"] == r.headers["x-correlation-id"]


@pytest.mark.integration
async def test_invalid_or_unknown_user_returns_401(client, world):
    r = await client.get("/api/requests", headers={"X-User-Id": "not-a-uuid"})
    assert r.status_code == 401, r.text

    r = await client.get("/api/requests", headers={"X-User-Id": str(world.lead.id)})
    assert r.status_code == 401, r.text


@pytest.mark.integration
async def test_non_admin_gets_403_on_admin_routes(client, world, headers):
    for path in ("/api/admin/users", "/api/admin/stats", "/api/admin/shifts", "/api/admin/tasks"):
        r = await client.get(path, headers=headers(world.alice))
        assert r.status_code == 403, (path, r.text)
        assert r.json()["errorCode"] == "FORBIDDEN"


@pytest.mark.integration
async def test_validation_errors_are_400_and_echo_correlation_id(client, world, headers):
    r = await client.post(
        "/api/requests",
        json={"type": "HOLIDAY"},
        headers={**headers(world.alice), "x-correlation-id": "corr-123"},
    )
    assert r.status_code == 400, r.text
    data = r.json()
    assert data["errorCode"] == "VALIDATION_ERROR"
    assert "type" in data["userMessage"]
    assert data["correlationId"] == "corr-123"
    assert r.headers["x-correlation-id"] == "corr-123"
    assert r.headers["x-request-id"]


@pytest.mark.integration
async def test_health_endpoints_return_status(client):
    r = await client.get("/health")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "ok"

    r_db = await client.get("/health/db")
    assert r_db.status_code == 200, r_db.text
    assert r_db.json()["status"] == "ok"
    assert r_db.json()["latency_ms"] is not None

    r_cache = await client.get("/health/cache")
    assert r_cache.status_code == 200, r_cache.text
    assert r_cache.json()["status"] == "ok"
