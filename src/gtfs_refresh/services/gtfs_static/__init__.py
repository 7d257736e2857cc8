"""Static GTFS refresh pipeline."""

from gtfs_refresh.services.gtfs_static.fetcher import GtfsArchiveFetcher, NetworkError
from gtfs_refresh.services.gtfs_static.loader import RefreshResult, load_batches, reset_table
from gtfs_refresh.services.gtfs_static.parser import ParseError, parse_table
from gtfs_refresh.services.gtfs_static.reader import (
    ArchiveFormatError,
    ArchiveHandle,
    MissingMemberError,
)
from gtfs_refresh.services.gtfs_static.refresher import (
    GtfsRefresher,
    RefreshInProgressError,
    RefreshReport,
    get_refresher,
    reset_refresher,
)
from gtfs_refresh.services.gtfs_static.scheduler import (
    RefreshScheduler,
    get_scheduler,
    reset_scheduler,
    shutdown_scheduler,
)
from gtfs_refresh.services.gtfs_static.tables import ALL_TABLES, GtfsTable, TableLayout

__all__ = [
    "ALL_TABLES",
    "ArchiveFormatError",
    "ArchiveHandle",
    "GtfsArchiveFetcher",
    "GtfsRefresher",
    "GtfsTable",
    "MissingMemberError",
    "NetworkError",
    "ParseError",
    "RefreshInProgressError",
    "RefreshReport",
    "RefreshResult",
    "RefreshScheduler",
    "TableLayout",
    "get_refresher",
    "get_scheduler",
    "load_batches",
    "parse_table",
    "reset_refresher",
    "reset_scheduler",
    "reset_table",
    "shutdown_scheduler",
]
