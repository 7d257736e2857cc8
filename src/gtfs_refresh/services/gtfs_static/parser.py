"""Positional GTFS CSV parser.

Lines are split on bare commas by default; quoted fields containing commas
are not understood unless ``quoted=True`` is passed. Columns are picked by
position, so a short line yields ``None`` for the columns it lacks instead of
failing the table.
"""

from __future__ import annotations

import csv
import re
from typing import TYPE_CHECKING

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.gtfs_static.tables import resolve_layout

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.records import GtfsRecordBase
    from gtfs_refresh.services.gtfs_static.tables import GtfsTable, TableLayout

logger = get_logger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class ParseError(Exception):
    """Raised when table content does not match the expected layout."""


def split_lines(raw_text: str) -> list[str]:
    """Split on CRLF or LF and drop empty lines."""
    return [line for line in _LINE_BREAK.split(raw_text) if line]


def split_fields(line: str, quoted: bool = False) -> list[str]:
    if quoted:
        return next(csv.reader([line]), [])
    return line.split(",")


def validate_header(header: list[str], layout: TableLayout) -> None:
    """Check that each configured index carries the expected column name.

    Raises:
        ParseError: On the first mismatched or absent column.
    """
    mismatched: list[str] = []
    for col in layout.columns:
        actual = header[col.index].strip() if col.index < len(header) else None
        if actual != col.source_name:
            mismatched.append(f"{col.index}:{col.source_name}!={actual}")

    if mismatched:
        msg = f"Unexpected header in {layout.member}: {', '.join(mismatched)}"
        raise ParseError(msg)


def parse_table(
    raw_text: str,
    table: GtfsTable | TableLayout,
    *,
    quoted: bool = False,
    validate_header_row: bool = False,
) -> list[GtfsRecordBase]:
    """Turn the text of one GTFS file into typed records.

    The first non-empty line is treated as the header and skipped. Every
    following non-empty line becomes exactly one record.

    Raises:
        ParseError: Only when ``validate_header_row`` is set and the header
            does not match the layout.
    """
    layout = resolve_layout(table)
    lines = split_lines(raw_text)
    if not lines:
        logger.info("Parsed GTFS file", member=layout.member, records=0)
        return []

    header, body = lines[0], lines[1:]
    if validate_header_row:
        validate_header(split_fields(header, quoted), layout)

    max_index = max(col.index for col in layout.columns)
    records: list[GtfsRecordBase] = []
    short_lines = 0
    for line in body:
        values = split_fields(line, quoted)
        if len(values) <= max_index:
            short_lines += 1
        row = {
            col.field: values[col.index] if col.index < len(values) else None
            for col in layout.columns
        }
        records.append(layout.record_type(**row))

    if short_lines:
        logger.warning(
            "Short lines in GTFS file, missing columns left empty",
            member=layout.member,
            short_lines=short_lines,
        )
    logger.info("Parsed GTFS file", member=layout.member, records=len(records))
    return records
