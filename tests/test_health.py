"""Tests for health endpoint."""

import pytest
from httpx import AsyncClient

from gtfs_refresh.config import get_settings
from gtfs_refresh.main import app, lifespan
from gtfs_refresh.services.gtfs_static import scheduler as scheduler_module
from gtfs_refresh.services.store import set_store

from .fixtures.fake_store import FakeTableStore


@pytest.mark.asyncio
async def test_health_endpoint_returns_200(client: AsyncClient) -> None:
    """Test that health endpoint returns 200 with expected fields."""
    response = await client.get("/health")

    assert response.status_code == 200

    data = response.json()
    assert data["service"] == "GTFS Schedule Refresh API"
    assert data["status"] == "healthy"
    assert data["version"] == "0.1.0"
    assert data["environment"] in ["development", "staging", "production"]
    assert "timestamp" in data
    assert data["checks"]["store"] is True
    assert data["checks"]["refresh"]["schedulerRunning"] is False
    assert data["checks"]["refresh"]["lastStatus"] is None
    assert data["issues"] == []


@pytest.mark.asyncio
async def test_health_degraded_when_store_unreachable(
    client: AsyncClient, fake_store: FakeTableStore
) -> None:
    fake_store.healthy = False
    response = await client.get("/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["store"] is False
    assert any("unreachable" in issue for issue in data["issues"])


@pytest.mark.asyncio
async def test_health_unhealthy_without_feed_url(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("GTFS_STATIC_URL", "")
    get_settings.cache_clear()

    response = await client.get("/health")

    data = response.json()
    assert data["status"] == "unhealthy"
    assert any("GTFS_STATIC_URL" in issue for issue in data["issues"])


@pytest.mark.asyncio
async def test_health_endpoint_has_request_id_header(client: AsyncClient) -> None:
    """Test that health endpoint response includes X-Request-ID header."""
    response = await client.get("/health")

    assert "X-Request-ID" in response.headers
    assert len(response.headers["X-Request-ID"]) > 0


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


@pytest.mark.asyncio
async def test_health_unhealthy_when_rest_credentials_missing(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("STORE_BACKEND", "rest")
    get_settings.cache_clear()
    set_store(None)

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["checks"]["store"] is None
    assert data["checks"]["refresh"]["schedulerRunning"] is False
    assert any("SUPABASE_URL" in issue for issue in data["issues"])
    assert not any("unreachable" in issue for issue in data["issues"])


@pytest.mark.asyncio
async def test_lifespan_shutdown_without_store_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORE_BACKEND", "rest")
    get_settings.cache_clear()

    async with lifespan(app):
        pass

    assert scheduler_module._scheduler_instance is None
