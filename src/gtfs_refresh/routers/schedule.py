"""Read endpoints over the refreshed schedule tables.

Endpoints
---------
GET /routes                   - every route
GET /trips?route_id=          - trips of one route
GET /shapes?shape_id=         - points of one shape
GET /calendar?service_id=     - calendar rows of one service
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.gtfs_static.tables import GtfsTable
from gtfs_refresh.services.store import StoreError, get_store

logger = get_logger(__name__)

router = APIRouter(tags=["schedule"])


async def _select(
    table: GtfsTable, column: str | None = None, value: str | None = None
) -> list[dict[str, Any]]:
    store = get_store()
    try:
        return await store.select(table, column, value)
    except StoreError as exc:
        logger.error("Store query failed", table=table.value, column=column, error=str(exc))
        raise HTTPException(status_code=500, detail=str(exc)) from exc


async def _filtered(table: GtfsTable, column: str, value: str | None) -> list[dict[str, Any]]:
    """Exact-match lookup on one required query parameter."""
    if not value:
        raise HTTPException(status_code=400, detail=f"missing {column}")
    return await _select(table, column, value)


@router.get("/routes", summary="List all routes")
async def list_routes() -> list[dict[str, Any]]:
    return await _select(GtfsTable.ROUTES)


@router.get("/trips", summary="List trips for a route")
async def list_trips(
    route_id: Annotated[str | None, Query(description="Route to filter on")] = None,
) -> list[dict[str, Any]]:
    return await _filtered(GtfsTable.TRIPS, "route_id", route_id)


@router.get("/shapes", summary="List points of a shape")
async def list_shapes(
    shape_id: Annotated[str | None, Query(description="Shape to filter on")] = None,
) -> list[dict[str, Any]]:
    return await _filtered(GtfsTable.SHAPES, "shape_id", shape_id)


@router.get("/calendar", summary="List calendar entries for a service")
async def list_calendar(
    service_id: Annotated[str | None, Query(description="Service to filter on")] = None,
) -> list[dict[str, Any]]:
    return await _filtered(GtfsTable.CALENDAR, "service_id", service_id)
