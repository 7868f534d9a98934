import pytest


@pytest.mark.asyncio
async def test_health_endpoint(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "notevault-backend"}


@pytest.mark.asyncio
async def test_readiness_checks_database(client):
    response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["database"] == "ok"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    await client.get("/health")
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "notevault_http_requests_total" in response.text
