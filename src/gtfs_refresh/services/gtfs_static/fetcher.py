"""GTFS static feed fetcher with a bounded timeout and ZIP validation."""

from __future__ import annotations

import io
import zipfile

import httpx

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.gtfs_static.reader import ArchiveFormatError, ArchiveHandle

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 60

# ZIP magic bytes
ZIP_MAGIC = b"PK\x03\x04"


class NetworkError(Exception):
    """Raised when the feed is unreachable or answers with a non-2xx status."""


class GtfsArchiveFetcher:
    """Downloads the static GTFS archive in a single attempt."""

    def __init__(self, timeout_sec: int = DEFAULT_TIMEOUT_SEC) -> None:
        self.timeout_sec = timeout_sec

    async def fetch_archive(self, url: str) -> ArchiveHandle:
        """Download the GTFS ZIP and open it.

        Raises:
            NetworkError: On transport failure, timeout, or non-2xx status.
            ArchiveFormatError: If the payload is not a ZIP archive.
        """
        logger.info("Fetching GTFS static feed", url=url, timeout_sec=self.timeout_sec)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_sec),
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.content
        except httpx.HTTPStatusError as exc:
            msg = f"GTFS feed returned HTTP {exc.response.status_code}"
            logger.error(msg, url=url)
            raise NetworkError(msg) from exc
        except httpx.RequestError as exc:
            msg = f"GTFS feed unreachable: {type(exc).__name__}: {exc}"
            logger.error(msg, url=url)
            raise NetworkError(msg) from exc

        self._validate_zip(data)
        logger.info("GTFS feed downloaded", size_bytes=len(data))
        return ArchiveHandle(data)

    @staticmethod
    def _validate_zip(data: bytes) -> None:
        """Validate that data starts with ZIP magic bytes."""
        if len(data) < 4 or data[:4] != ZIP_MAGIC:
            msg = "Downloaded content is not a valid ZIP file"
            raise ArchiveFormatError(msg)
        if not zipfile.is_zipfile(io.BytesIO(data)):
            msg = "Downloaded content is not a valid ZIP file"
            raise ArchiveFormatError(msg)
