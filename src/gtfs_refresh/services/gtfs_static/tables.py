"""GTFS tables refreshed by the service and their positional column layouts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gtfs_refresh.services.gtfs_static.records import (
    CalendarRecord,
    GtfsRecordBase,
    RouteRecord,
    ShapeRecord,
    TripRecord,
)


@dataclass(frozen=True)
class ColumnSpec:
    """One source column: its position, its header name, and the record field."""

    index: int
    source_name: str
    field: str


@dataclass(frozen=True)
class TableLayout:
    """Where a table lives in the archive and how its columns are picked."""

    name: str
    member: str
    columns: tuple[ColumnSpec, ...]
    record_type: type[GtfsRecordBase]
    key_field: str

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(col.field for col in self.columns)


def _same_name(*pairs: tuple[int, str]) -> tuple[ColumnSpec, ...]:
    return tuple(ColumnSpec(index, name, name) for index, name in pairs)


ROUTES_LAYOUT = TableLayout(
    name="routes",
    member="routes.txt",
    columns=_same_name(
        (0, "route_id"),
        (1, "agency_id"),
        (2, "route_short_name"),
        (3, "route_long_name"),
        (5, "route_type"),
        (7, "route_color"),
        (8, "route_text_color"),
    ),
    record_type=RouteRecord,
    key_field="route_id",
)

TRIPS_LAYOUT = TableLayout(
    name="trips",
    member="trips.txt",
    columns=_same_name(
        (0, "route_id"),
        (1, "service_id"),
        (2, "trip_id"),
        (3, "trip_headsign"),
        (4, "direction_id"),
        (6, "shape_id"),
    ),
    record_type=TripRecord,
    key_field="trip_id",
)

SHAPES_LAYOUT = TableLayout(
    name="shapes",
    member="shapes.txt",
    columns=_same_name(
        (0, "shape_id"),
        (1, "shape_pt_lat"),
        (2, "shape_pt_lon"),
        (3, "shape_pt_sequence"),
        (4, "shape_dist_traveled"),
    ),
    record_type=ShapeRecord,
    key_field="shape_id",
)

CALENDAR_LAYOUT = TableLayout(
    name="calendar",
    member="calendar.txt",
    columns=_same_name(
        (0, "service_id"),
        (1, "monday"),
        (2, "tuesday"),
        (3, "wednesday"),
        (4, "thursday"),
        (5, "friday"),
        (6, "saturday"),
        (7, "sunday"),
        (8, "start_date"),
        (9, "end_date"),
    ),
    record_type=CalendarRecord,
    key_field="service_id",
)


class GtfsTable(str, Enum):
    """Tables refreshed from the static feed, in refresh order."""

    ROUTES = "routes"
    TRIPS = "trips"
    SHAPES = "shapes"
    CALENDAR = "calendar"

    @property
    def layout(self) -> TableLayout:
        return _LAYOUTS[self]


_LAYOUTS: dict[GtfsTable, TableLayout] = {
    GtfsTable.ROUTES: ROUTES_LAYOUT,
    GtfsTable.TRIPS: TRIPS_LAYOUT,
    GtfsTable.SHAPES: SHAPES_LAYOUT,
    GtfsTable.CALENDAR: CALENDAR_LAYOUT,
}

ALL_TABLES: tuple[GtfsTable, ...] = tuple(GtfsTable)


def resolve_layout(table: GtfsTable | TableLayout) -> TableLayout:
    """Accept either an enum member or an explicit layout."""
    if isinstance(table, TableLayout):
        return table
    return GtfsTable(table).layout
