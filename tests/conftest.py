"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient

from gtfs_refresh.config import get_settings
from gtfs_refresh.main import app
from gtfs_refresh.services.gtfs_static.refresher import reset_refresher
from gtfs_refresh.services.gtfs_static.scheduler import reset_scheduler
from gtfs_refresh.services.store import set_store

from .fixtures.fake_store import FakeTableStore

FEED_URL = "https://feeds.example.org/gtfs.zip"


def _reset_singletons() -> None:
    reset_scheduler()
    reset_refresher()
    set_store(None)
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Fresh settings and singletons for every test."""
    monkeypatch.setenv("GTFS_STATIC_URL", FEED_URL)
    monkeypatch.setenv("REFRESH_AUTO_START", "false")
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def fake_store() -> FakeTableStore:
    """In-memory store installed as the app's table store."""
    store = FakeTableStore()
    set_store(store)
    return store


@pytest.fixture
async def client(fake_store: FakeTableStore) -> AsyncGenerator[AsyncClient, None]:  # noqa: ARG001
    """Async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
