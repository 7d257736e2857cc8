"""Periodic GTFS refresh trigger."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from gtfs_refresh.config import get_settings
from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.gtfs_static.refresher import RefreshInProgressError, get_refresher

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.refresher import GtfsRefresher

logger = get_logger(__name__)


class RefreshScheduler:
    """Runs a refresh every ``interval_sec`` in a background task.

    Usage:
        scheduler = RefreshScheduler(refresher, url, interval_sec=3600)
        await scheduler.start()
        await scheduler.stop()
    """

    def __init__(self, refresher: GtfsRefresher, source_url: str, interval_sec: int) -> None:
        self._refresher = refresher
        self._source_url = source_url
        self._interval = interval_sec

        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._run_count = 0
        self._last_run_at: datetime | None = None
        self._last_error: str | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def run_count(self) -> int:
        return self._run_count

    async def start(self) -> None:
        """Start the background refresh loop."""
        if self._running:
            logger.warning("Refresh scheduler already running, ignoring start request")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Refresh scheduler started", interval_sec=self._interval)

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Refresh scheduler stopped")

    async def run_once(self) -> None:
        self._run_count += 1
        self._last_run_at = datetime.now(timezone.utc)
        try:
            report = await self._refresher.run(self._source_url)
        except RefreshInProgressError:
            logger.info("Skipping scheduled refresh, another refresh is running")
            self._last_error = None
            return
        except Exception as exc:
            self._last_error = f"{type(exc).__name__}: {exc}"
            logger.error("Scheduled refresh failed", error=self._last_error)
            return
        self._last_error = None if report.status == "success" else "partial refresh"

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "run_count": self._run_count,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_error": self._last_error,
            "interval_sec": self._interval,
        }

    async def _loop(self) -> None:
        while self._running:
            await self.run_once()
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break


_scheduler_instance: RefreshScheduler | None = None


def get_scheduler() -> RefreshScheduler:
    """Get or create the singleton scheduler."""
    global _scheduler_instance
    if _scheduler_instance is None:
        settings = get_settings()
        _scheduler_instance = RefreshScheduler(
            refresher=get_refresher(),
            source_url=settings.gtfs_static_url,
            interval_sec=settings.refresh_interval_sec,
        )
    return _scheduler_instance


def reset_scheduler() -> None:
    """Reset the singleton (for testing)."""
    global _scheduler_instance
    _scheduler_instance = None


async def shutdown_scheduler() -> None:
    """Stop the scheduler if one was created, then drop it.

    Never builds a scheduler, so shutdown works even when the store cannot be
    constructed.
    """
    global _scheduler_instance
    if _scheduler_instance is not None and _scheduler_instance.is_running:
        await _scheduler_instance.stop()
    _scheduler_instance = None
