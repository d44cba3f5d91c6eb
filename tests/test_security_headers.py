"""Tests for security headers middleware."""

import pytest
from httpx import AsyncClient

EXPECTED_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


@pytest.mark.asyncio
async def test_security_headers_on_health_endpoint(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    for name, value in EXPECTED_HEADERS.items():
        assert response.headers[name] == value


@pytest.mark.asyncio
async def test_security_headers_on_error_response(client: AsyncClient):
    """Error responses from the central handler carry the same headers."""
    response = await client.get("/v1/events")
    assert response.status_code == 401
    for name, value in EXPECTED_HEADERS.items():
        assert response.headers[name] == value


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    response = await client.options(
        "/v1/events",
        headers={"Origin": "http://dashboard.test", "Access-Control-Request-Method": "GET"},
    )
    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
