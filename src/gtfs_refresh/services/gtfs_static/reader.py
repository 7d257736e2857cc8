"""In-memory handle over a downloaded GTFS ZIP archive."""

from __future__ import annotations

import io
import zipfile

from gtfs_refresh.logging import get_logger

logger = get_logger(__name__)


class ArchiveFormatError(Exception):
    """Raised when the payload is not a usable GTFS ZIP archive."""


class MissingMemberError(ArchiveFormatError):
    """Raised when an expected file is not present in the archive."""


class ArchiveHandle:
    """Gives named, whole-file text access to the members of a ZIP archive."""

    def __init__(self, data: bytes) -> None:
        """Open the archive from raw bytes.

        Raises:
            ArchiveFormatError: If data is not a valid ZIP.
        """
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            msg = f"Archive is not a valid ZIP file: {exc}"
            raise ArchiveFormatError(msg) from exc

        logger.debug("GTFS archive opened", members=len(self._zip.namelist()))

    def extract_text(self, member: str) -> str:
        """Read a whole member and decode it as text.

        Raises:
            MissingMemberError: If the member is not in the archive.
            ArchiveFormatError: If the member is corrupt or not UTF-8.
        """
        try:
            raw = self._zip.read(member)
        except KeyError as exc:
            msg = f"Missing GTFS file in archive: {member}"
            raise MissingMemberError(msg) from exc
        except zipfile.BadZipFile as exc:
            msg = f"Corrupt GTFS file in archive: {member}: {exc}"
            raise ArchiveFormatError(msg) from exc

        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"GTFS file is not UTF-8 text: {member}"
            raise ArchiveFormatError(msg) from exc

    def list_members(self) -> list[str]:
        """List all filenames in the archive."""
        return self._zip.namelist()

    def close(self) -> None:
        """Close the ZIP archive."""
        self._zip.close()

    def __enter__(self) -> ArchiveHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
