"""GTFS static refresh - orchestrates fetch, reset, extract, parse, and load."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from gtfs_refresh.config import get_settings
from gtfs_refresh.logging import get_logger, refresh_context
from gtfs_refresh.services.gtfs_static.fetcher import GtfsArchiveFetcher
from gtfs_refresh.services.gtfs_static.loader import RefreshResult, load_batches, reset_table
from gtfs_refresh.services.gtfs_static.parser import ParseError, parse_table
from gtfs_refresh.services.gtfs_static.reader import ArchiveFormatError
from gtfs_refresh.services.gtfs_static.tables import ALL_TABLES, GtfsTable
from gtfs_refresh.services.store import get_store

if TYPE_CHECKING:
    from collections.abc import Sequence

    from gtfs_refresh.services.gtfs_static.reader import ArchiveHandle
    from gtfs_refresh.services.store.base import TableStore

logger = get_logger(__name__)


class RefreshInProgressError(Exception):
    """Raised when a refresh is requested while another one is running."""


class RefreshReport:
    """Collects per-table results and timing for one refresh run."""

    def __init__(self, source: str, refresh_id: str | None = None) -> None:
        self.refresh_id = refresh_id or str(uuid.uuid4())
        self.source = source
        self.started_at = datetime.now(timezone.utc)
        self.ended_at: datetime | None = None
        self.duration_ms: int | None = None
        self.results: list[RefreshResult] = []

    @property
    def status(self) -> str:
        return "success" if all(result.ok for result in self.results) else "partial"

    def finish(self) -> None:
        self.ended_at = datetime.now(timezone.utc)
        self.duration_ms = int((self.ended_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "refresh_id": self.refresh_id,
            "source": self.source,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_ms": self.duration_ms,
            "results": [result.to_dict() for result in self.results],
        }


class GtfsRefresher:
    """Reloads the GTFS tables from a fresh copy of the static feed.

    Tables are processed one at a time in the requested order. A failed
    download aborts the whole refresh; any later failure is recorded against
    the table it happened in and the next table is processed regardless.
    Only one refresh may run at a time per refresher.
    """

    def __init__(
        self,
        store: TableStore,
        fetcher: GtfsArchiveFetcher | None = None,
        batch_size: int | None = None,
        quoted: bool | None = None,
        validate_header: bool | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.batch_size = batch_size if batch_size is not None else settings.import_batch_size
        self.quoted = quoted if quoted is not None else settings.gtfs_csv_quoted
        self.validate_header = (
            validate_header if validate_header is not None else settings.gtfs_validate_header
        )
        self._fetcher = fetcher or GtfsArchiveFetcher(timeout_sec=settings.gtfs_fetch_timeout_sec)
        self._lock = asyncio.Lock()
        self._last_report: RefreshReport | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def last_report(self) -> RefreshReport | None:
        return self._last_report

    async def run(
        self,
        source_url: str,
        tables: Sequence[GtfsTable] = ALL_TABLES,
    ) -> RefreshReport:
        """Run one refresh and wrap the per-table results in a report.

        Raises:
            RefreshInProgressError: If a refresh is already running.
            NetworkError: If the feed cannot be downloaded.
            ArchiveFormatError: If the download is not a ZIP archive.
        """
        report = RefreshReport(source=source_url)
        with refresh_context(report.refresh_id, source_url):
            logger.info("Starting GTFS refresh", tables=[table.value for table in tables])
            report.results = await self.refresh(source_url, tables)
            report.finish()
            self._last_report = report

            logger.info(
                "GTFS refresh complete",
                status=report.status,
                duration_ms=report.duration_ms,
                succeeded={result.table: result.succeeded for result in report.results},
            )
        return report

    async def refresh(
        self,
        source_url: str,
        tables: Sequence[GtfsTable] = ALL_TABLES,
    ) -> list[RefreshResult]:
        """Fetch the feed once, then reset and reload each table in order.

        Returns:
            One RefreshResult per requested table, in the requested order.
        """
        if self._lock.locked():
            msg = "refresh already in progress"
            raise RefreshInProgressError(msg)

        async with self._lock:
            archive = await self._fetcher.fetch_archive(source_url)
            with archive:
                return [await self._refresh_table(archive, table) for table in tables]

    async def _refresh_table(self, archive: ArchiveHandle, table: GtfsTable) -> RefreshResult:
        result = RefreshResult(table.value)
        await reset_table(self.store, table, result)

        try:
            raw_text = archive.extract_text(table.layout.member)
            records = parse_table(
                raw_text,
                table,
                quoted=self.quoted,
                validate_header_row=self.validate_header,
            )
        except (ArchiveFormatError, ParseError) as exc:
            msg = f"{table.value} {type(exc).__name__}: {exc}"
            logger.error(msg, table=table.value)
            result.errors.append(msg)
            return result

        await load_batches(self.store, table, records, self.batch_size, result=result)
        return result


# Singleton instance for the app lifecycle
_refresher_instance: GtfsRefresher | None = None


def get_refresher() -> GtfsRefresher:
    """Get or create the singleton refresher bound to the configured store."""
    global _refresher_instance
    if _refresher_instance is None:
        _refresher_instance = GtfsRefresher(store=get_store())
    return _refresher_instance


def reset_refresher() -> None:
    """Reset the singleton (for testing)."""
    global _refresher_instance
    _refresher_instance = None
