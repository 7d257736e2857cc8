"""Table store interface consumed by the refresh pipeline and read endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.tables import GtfsTable, TableLayout


class StoreError(Exception):
    """Raised when a truncate, insert, or select against the store fails."""


class StoreConfigError(StoreError):
    """Raised when the configured backend is missing its connection settings."""


class TableStore(Protocol):
    """Minimal relational table API: truncate, bulk insert, filtered select."""

    async def truncate(self, table: GtfsTable) -> None: ...

    async def bulk_insert(self, table: GtfsTable, rows: list[dict[str, Any]]) -> int:
        """Insert rows and return how many the store acknowledged."""
        ...

    async def select(
        self,
        table: GtfsTable,
        column: str | None = None,
        value: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


def checked_column(layout: TableLayout, column: str) -> str:
    """Return column if it belongs to the table layout.

    Table and column names are interpolated into queries and URLs, so only
    names from the fixed layouts are accepted.

    Raises:
        StoreError: If the column is not part of the layout.
    """
    if column not in layout.fields:
        msg = f"Unknown column for {layout.name}: {column}"
        raise StoreError(msg)
    return column
