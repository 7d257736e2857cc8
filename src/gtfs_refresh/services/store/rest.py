"""Table store backed by a PostgREST endpoint, such as a Supabase project."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.store.base import StoreError, checked_column

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.tables import GtfsTable

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 30


class RestTableStore:
    """Talks to ``<base_url>/rest/v1/<table>`` with a service key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url or not api_key:
            msg = "base_url and api_key are required"
            raise ValueError(msg)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout_sec),
            transport=transport,
        )

    async def truncate(self, table: GtfsTable) -> None:
        """Delete every row; PostgREST refuses an unfiltered DELETE."""
        layout = table.layout
        await self._request(
            "DELETE",
            f"/{layout.name}",
            params={layout.key_field: "not.is.null"},
            headers={"Prefer": "return=minimal"},
        )
        logger.info("Table truncated", table=layout.name)

    async def bulk_insert(self, table: GtfsTable, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        path = f"/{table.layout.name}"
        response = await self._request(
            "POST",
            path,
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        # An empty 2xx body means the server or a proxy ignored the Prefer header
        if not response.content.strip():
            return len(rows)
        return len(self._json_list(response, "POST", path))

    async def select(
        self,
        table: GtfsTable,
        column: str | None = None,
        value: str | None = None,
    ) -> list[dict[str, Any]]:
        layout = table.layout
        path = f"/{layout.name}"
        params = {"select": ",".join(layout.fields)}
        if column is not None:
            params[checked_column(layout, column)] = f"eq.{value}"
        response = await self._request("GET", path, params=params)
        return self._json_list(response, "GET", path)

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/")
        except httpx.RequestError:
            return False
        return response.status_code < 500

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            msg = (
                f"{method} {path} failed with HTTP {exc.response.status_code}: "
                f"{exc.response.text[:200]}"
            )
            raise StoreError(msg) from exc
        except httpx.RequestError as exc:
            msg = f"{method} {path} failed: {type(exc).__name__}: {exc}"
            raise StoreError(msg) from exc
        return response

    @staticmethod
    def _json_list(response: httpx.Response, method: str, path: str) -> list[dict[str, Any]]:
        try:
            body = response.json()
        except ValueError as exc:
            msg = f"{method} {path} returned a non-JSON body: {response.text[:200]}"
            raise StoreError(msg) from exc
        if not isinstance(body, list):
            msg = f"{method} {path} returned {type(body).__name__}, expected a list of rows"
            raise StoreError(msg)
        return body
