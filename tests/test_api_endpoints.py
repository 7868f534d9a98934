"""
API Endpoint Tests - availability, auth guards and the error envelope
"""
import uuid

import pytest


@pytest.mark.asyncio
async def test_root_endpoint(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "NoteVault Backend"


@pytest.mark.asyncio
async def test_openapi_schema(client):
    response = await client.get("/openapi.json")
    assert response.status_code == 200
    data = response.json()
    assert "/api/v1/notes" in data["paths"]
    assert "BearerAuth" in data["components"]["securitySchemes"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/v1/auth/me"),
        ("POST", "/api/v1/auth/logout"),
        ("GET", "/api/v1/notes/library"),
        ("GET", "/api/v1/notes/my-notes"),
        ("POST", "/api/v1/payments/create-order"),
        ("GET", "/api/v1/payments/transactions"),
        ("GET", "/api/v1/wallet"),
        ("GET", "/api/v1/messages/conversations"),
        ("GET", "/api/v1/notifications"),
        ("GET", "/api/v1/wishlist"),
    ],
)
async def test_protected_endpoints_require_auth(client, method, path):
    response = await client.request(method, path, json={} if method == "POST" else None)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_error_envelope_shape(client):
    response = await client.get(f"/api/v1/notes/{uuid.uuid4()}", headers={"X-Request-ID": "trace-1"})
    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["request_id"] == "trace-1"
    assert error["method"] == "GET"
    assert error["path"].startswith("/api/v1/notes/")
    assert "timestamp" in error
    assert response.headers["X-Request-ID"] == "trace-1"


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client):
    response = await client.get("/api/v1/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_validation_error_envelope(client):
    response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in error["details"]["validation_errors"]}
    assert "body.email" in fields
    assert "body.password" in fields
