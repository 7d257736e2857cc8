"""Tests for RestTableStore against a mocked PostgREST transport."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from gtfs_refresh.services.gtfs_static.fetcher import GtfsArchiveFetcher
from gtfs_refresh.services.gtfs_static.reader import ArchiveHandle
from gtfs_refresh.services.gtfs_static.refresher import GtfsRefresher
from gtfs_refresh.services.gtfs_static.tables import GtfsTable
from gtfs_refresh.services.store import StoreError
from gtfs_refresh.services.store.rest import RestTableStore

from .fixtures.gtfs_fixture import ROW_COUNTS, build_gtfs_zip

BASE_URL = "https://project.supabase.co"


def _fetcher_for(zip_bytes: bytes) -> GtfsArchiveFetcher:
    fetcher = GtfsArchiveFetcher()
    fetcher.fetch_archive = AsyncMock(return_value=ArchiveHandle(zip_bytes))  # type: ignore[method-assign]
    return fetcher


def _store(handler) -> tuple[RestTableStore, list[httpx.Request]]:  # type: ignore[no-untyped-def]
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    store = RestTableStore(BASE_URL, "service-key", transport=httpx.MockTransport(recording))
    return store, seen


class TestRestTableStore:
    """Unit tests for request shapes and error mapping."""

    def test_requires_credentials(self) -> None:
        with pytest.raises(ValueError):
            RestTableStore(BASE_URL, "")

    async def test_truncate_uses_key_filter(self) -> None:
        store, seen = _store(lambda _r: httpx.Response(204))

        await store.truncate(GtfsTable.TRIPS)

        request = seen[0]
        assert request.method == "DELETE"
        assert request.url.path == "/rest/v1/trips"
        assert request.url.params["trip_id"] == "not.is.null"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"
        await store.close()

    async def test_bulk_insert_counts_returned_rows(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json=json.loads(request.content))

        store, seen = _store(handler)
        rows = [{"route_id": "901"}, {"route_id": "902"}]

        acknowledged = await store.bulk_insert(GtfsTable.ROUTES, rows)

        assert acknowledged == 2
        assert seen[0].method == "POST"
        assert seen[0].headers["Prefer"] == "return=representation"
        assert json.loads(seen[0].content) == rows
        await store.close()

    async def test_bulk_insert_empty_sends_nothing(self) -> None:
        store, seen = _store(lambda _r: httpx.Response(201, json=[]))
        assert await store.bulk_insert(GtfsTable.ROUTES, []) == 0
        assert seen == []

    async def test_select_with_filter(self) -> None:
        rows = [{"shape_id": "a", "shape_pt_sequence": "1"}]
        store, seen = _store(lambda _r: httpx.Response(200, json=rows))

        assert await store.select(GtfsTable.SHAPES, "shape_id", "a") == rows
        params = seen[0].url.params
        assert params["shape_id"] == "eq.a"
        assert params["select"].startswith("shape_id,")
        await store.close()

    async def test_http_error_becomes_store_error(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(401, json={"message": "JWT expired"}))
        with pytest.raises(StoreError, match="HTTP 401"):
            await store.select(GtfsTable.CALENDAR, "service_id", "WD")

    async def test_transport_error_becomes_store_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        store, _ = _store(handler)
        with pytest.raises(StoreError, match="ConnectError"):
            await store.truncate(GtfsTable.ROUTES)

    async def test_ping(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(200, json={}))
        assert await store.ping() is True

    async def test_ping_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        store, _ = _store(handler)
        assert await store.ping() is False

    async def test_bulk_insert_empty_body_counts_sent_rows(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(201, content=b""))
        rows = [{"route_id": "901"}, {"route_id": "902"}]
        assert await store.bulk_insert(GtfsTable.ROUTES, rows) == 2

    async def test_bulk_insert_no_content_counts_sent_rows(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(204))
        assert await store.bulk_insert(GtfsTable.ROUTES, [{"route_id": "901"}]) == 1

    async def test_bulk_insert_non_json_body_becomes_store_error(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(201, content=b"<html>ok</html>"))
        with pytest.raises(StoreError, match="non-JSON body"):
            await store.bulk_insert(GtfsTable.ROUTES, [{"route_id": "901"}])

    async def test_select_non_json_body_becomes_store_error(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(200, content=b"not json"))
        with pytest.raises(StoreError, match="GET /trips returned a non-JSON body"):
            await store.select(GtfsTable.TRIPS, "route_id", "901")

    async def test_select_non_list_body_becomes_store_error(self) -> None:
        store, _ = _store(lambda _r: httpx.Response(200, json={"message": "ok"}))
        with pytest.raises(StoreError, match="expected a list of rows"):
            await store.select(GtfsTable.ROUTES)

    async def test_refresh_completes_when_inserts_return_no_body(self) -> None:
        store, seen = _store(
            lambda r: httpx.Response(204 if r.method == "DELETE" else 201, content=b"")
        )
        refresher = GtfsRefresher(
            store, fetcher=_fetcher_for(build_gtfs_zip()), batch_size=1000
        )

        results = await refresher.refresh("https://example.com/gtfs.zip")

        assert [r.table for r in results] == ["routes", "trips", "shapes", "calendar"]
        for result in results:
            assert result.ok
            assert result.succeeded == ROW_COUNTS[result.table]
        assert [r.method for r in seen].count("POST") == 4
        await store.close()
