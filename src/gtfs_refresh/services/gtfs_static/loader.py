"""Table reset and batched bulk loading against the table store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.store.base import StoreError

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.records import GtfsRecordBase
    from gtfs_refresh.services.gtfs_static.tables import GtfsTable
    from gtfs_refresh.services.store.base import TableStore

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


class RefreshResult:
    """Outcome of refreshing one table."""

    def __init__(self, table: str) -> None:
        self.table = table
        self.attempted = 0
        self.succeeded = 0
        self.batches = 0
        self.failed_batches = 0
        self.errors: list[str] = []

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> str | None:
        return "; ".join(self.errors) if self.errors else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "status": "success" if self.ok else "failed",
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "batches": self.batches,
            "failed_batches": self.failed_batches,
            "error": self.error,
            "errors": self.errors[:100],  # cap for response size
        }


async def reset_table(store: TableStore, table: GtfsTable, result: RefreshResult) -> None:
    """Truncate a table before reload.

    A failure is recorded on the result and does not stop the load that
    follows, which may then duplicate rows already in the table.
    """
    try:
        await store.truncate(table)
    except StoreError as exc:
        msg = f"{table.value} truncate failed: {exc}"
        logger.error(msg, table=table.value)
        result.errors.append(msg)


async def load_batches(
    store: TableStore,
    table: GtfsTable,
    records: list[GtfsRecordBase],
    batch_size: int = DEFAULT_BATCH_SIZE,
    result: RefreshResult | None = None,
) -> RefreshResult:
    """Insert records in front-to-back batches of at most ``batch_size``.

    ``records`` is drained as it is consumed. A failed batch is logged and
    recorded, and the remaining batches are still sent.
    """
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ValueError(msg)

    if result is None:
        result = RefreshResult(table.value)
    result.attempted += len(records)

    while records:
        batch = records[:batch_size]
        del records[:batch_size]
        result.batches += 1
        try:
            acknowledged = await store.bulk_insert(table, [record.to_row() for record in batch])
        except StoreError as exc:
            msg = f"{table.value} batch {result.batches} insert failed: {exc}"
            logger.error(msg, table=table.value, batch=result.batches, size=len(batch))
            result.errors.append(msg)
            result.failed_batches += 1
            continue
        result.succeeded += acknowledged

    logger.info(
        "Loaded table",
        table=table.value,
        attempted=result.attempted,
        succeeded=result.succeeded,
        batches=result.batches,
        failed_batches=result.failed_batches,
    )
    return result
