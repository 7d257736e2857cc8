"""Refresh trigger and scheduler control endpoints."""

from typing import Any, List, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from gtfs_refresh.config import get_settings
from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.gtfs_static.fetcher import NetworkError
from gtfs_refresh.services.gtfs_static.reader import ArchiveFormatError
from gtfs_refresh.services.gtfs_static.refresher import RefreshInProgressError, get_refresher
from gtfs_refresh.services.gtfs_static.scheduler import get_scheduler

logger = get_logger(__name__)

router = APIRouter(tags=["refresh"])


class TableResult(BaseModel):
    """Outcome for one table."""

    table: str
    status: Literal["success", "failed"]
    attempted: int
    succeeded: int
    batches: int
    failed_batches: int
    error: Optional[str] = None
    errors: List[str]


class RefreshResponse(BaseModel):
    """Response body for a refresh run."""

    status: Literal["success", "partial"]
    refresh_id: str
    started_at: str
    ended_at: Optional[str] = None
    duration_ms: Optional[int] = None
    source: str
    results: List[TableResult]


class SchedulerStatusResponse(BaseModel):
    """Response for scheduler status."""

    running: bool
    run_count: int
    last_run_at: Optional[str] = None
    last_error: Optional[str] = None
    interval_sec: int


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Refresh schedule tables from the static GTFS feed",
    description=(
        "Download the configured GTFS archive and reload routes, trips, shapes "
        "and calendar. Each table is truncated then bulk-loaded; per-table "
        "failures are reported without stopping the run."
    ),
)
async def refresh() -> dict[str, Any]:
    """Run one refresh pass."""
    settings = get_settings()
    missing = settings.missing_required_env()
    if missing:
        raise HTTPException(
            status_code=503, detail="missing configuration: " + ", ".join(missing)
        )

    try:
        report = await get_refresher().run(settings.gtfs_static_url)
    except RefreshInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except (NetworkError, ArchiveFormatError) as exc:
        logger.error("Refresh aborted", error=str(exc))
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return report.to_dict()


@router.post(
    "/refresh/scheduler/start",
    response_model=SchedulerStatusResponse,
    summary="Start the periodic refresh",
)
async def start_scheduler() -> dict[str, Any]:
    scheduler = get_scheduler()
    await scheduler.start()
    return scheduler.get_status()


@router.post(
    "/refresh/scheduler/stop",
    response_model=SchedulerStatusResponse,
    summary="Stop the periodic refresh",
)
async def stop_scheduler() -> dict[str, Any]:
    scheduler = get_scheduler()
    await scheduler.stop()
    return scheduler.get_status()


@router.get(
    "/refresh/scheduler/status",
    response_model=SchedulerStatusResponse,
    summary="Get periodic refresh status",
)
async def scheduler_status() -> dict[str, Any]:
    return get_scheduler().get_status()
