"""
Tests for the healthcheck endpoint.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.anyio
async def test_health_check_returns_200(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.anyio
async def test_health_check_reports_database(client: AsyncClient):
    data = (await client.get("/health")).json()

    assert data["status"] == "healthy"
    assert data["database"] is True


@pytest.mark.anyio
async def test_health_check_returns_app_info(client: AsyncClient):
    data = (await client.get("/health")).json()

    assert "app_name" in data
    assert "environment" in data
    assert data["version"] == "1.0.0"


@pytest.mark.anyio
async def test_missing_redis_does_not_degrade_health(client: AsyncClient):
    data = (await client.get("/health")).json()

    assert data["status"] == "healthy"
    assert data["rate_limiter"] in ("disabled", "unavailable")


@pytest.mark.anyio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    response = await client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "not_found"
    assert "message" in body
