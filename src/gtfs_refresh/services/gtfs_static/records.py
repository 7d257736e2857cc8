"""Typed row records for the GTFS tables we load.

Values are kept exactly as they appear in the feed. Numbers, coordinates and
dates stay strings, and a column missing from a short line is ``None``.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict


class GtfsRecordBase(BaseModel):
    """Common base for one parsed GTFS row."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_row(self) -> dict[str, Any]:
        """Return the record as a column -> value mapping for the store."""
        return self.model_dump()


class RouteRecord(GtfsRecordBase):
    route_id: str | None = None
    agency_id: str | None = None
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: str | None = None
    route_color: str | None = None
    route_text_color: str | None = None


class TripRecord(GtfsRecordBase):
    route_id: str | None = None
    service_id: str | None = None
    trip_id: str | None = None
    trip_headsign: str | None = None
    direction_id: str | None = None
    shape_id: str | None = None


class ShapeRecord(GtfsRecordBase):
    shape_id: str | None = None
    shape_pt_lat: str | None = None
    shape_pt_lon: str | None = None
    shape_pt_sequence: str | None = None
    shape_dist_traveled: str | None = None


class CalendarRecord(GtfsRecordBase):
    service_id: str | None = None
    monday: str | None = None
    tuesday: str | None = None
    wednesday: str | None = None
    thursday: str | None = None
    friday: str | None = None
    saturday: str | None = None
    sunday: str | None = None
    start_date: str | None = None
    end_date: str | None = None


GtfsRecord = Union[RouteRecord, TripRecord, ShapeRecord, CalendarRecord]
