"""In-memory table store for pipeline and API tests."""

from __future__ import annotations

from typing import Any

from gtfs_refresh.services.gtfs_static.tables import GtfsTable
from gtfs_refresh.services.store.base import StoreError


class FakeTableStore:
    """Keeps rows per table in lists and records every call.

    ``fail_truncate`` names tables whose truncate raises; ``fail_insert_calls``
    holds 1-based insert call numbers that raise.
    """

    def __init__(
        self,
        fail_truncate: set[str] | None = None,
        fail_insert_calls: set[int] | None = None,
        fail_select: bool = False,
        healthy: bool = True,
    ) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {t.value: [] for t in GtfsTable}
        self.calls: list[tuple[str, str, int]] = []
        self.inserted_batches: list[list[dict[str, Any]]] = []
        self.fail_truncate = fail_truncate or set()
        self.fail_insert_calls = fail_insert_calls or set()
        self.fail_select = fail_select
        self.healthy = healthy
        self._insert_calls = 0

    async def truncate(self, table: GtfsTable) -> None:
        self.calls.append(("truncate", table.value, 0))
        if table.value in self.fail_truncate:
            raise StoreError(f"permission denied for table {table.value}")
        self.tables[table.value].clear()

    async def bulk_insert(self, table: GtfsTable, rows: list[dict[str, Any]]) -> int:
        self._insert_calls += 1
        self.calls.append(("insert", table.value, len(rows)))
        self.inserted_batches.append(list(rows))
        if self._insert_calls in self.fail_insert_calls:
            raise StoreError("connection reset by peer")
        self.tables[table.value].extend(rows)
        return len(rows)

    async def select(
        self,
        table: GtfsTable,
        column: str | None = None,
        value: str | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(("select", table.value, 0))
        if self.fail_select:
            raise StoreError("relation does not exist")
        rows = self.tables[table.value]
        if column is None:
            return list(rows)
        return [row for row in rows if row.get(column) == value]

    async def ping(self) -> bool:
        return self.healthy

    async def close(self) -> None:
        return None

    def count(self, table: str) -> int:
        return len(self.tables[table])
