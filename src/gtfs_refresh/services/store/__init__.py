"""Table store adapters and the process-wide store instance."""

from __future__ import annotations

from gtfs_refresh.config import get_settings
from gtfs_refresh.services.store.base import StoreConfigError, StoreError, TableStore
from gtfs_refresh.services.store.rest import RestTableStore
from gtfs_refresh.services.store.sql import SqlTableStore

__all__ = [
    "RestTableStore",
    "SqlTableStore",
    "StoreConfigError",
    "StoreError",
    "TableStore",
    "close_store",
    "get_store",
    "set_store",
]

_store_instance: TableStore | None = None


def _build_store() -> TableStore:
    settings = get_settings()
    try:
        if settings.store_backend == "rest":
            return RestTableStore(
                base_url=settings.supabase_url,
                api_key=settings.supabase_service_role_key,
                timeout_sec=settings.store_timeout_sec,
            )
        return SqlTableStore(
            settings.database_url,
            echo=settings.debug,
            timeout_sec=settings.store_timeout_sec,
        )
    except ValueError as exc:
        msg = f"{settings.store_backend} store is not configured: {exc}"
        raise StoreConfigError(msg) from exc


def get_store() -> TableStore:
    """Get or create the configured store.

    Raises:
        StoreConfigError: If the selected backend lacks its connection settings.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = _build_store()
    return _store_instance


def set_store(store: TableStore | None) -> None:
    """Replace the singleton (for testing)."""
    global _store_instance
    _store_instance = store


async def close_store() -> None:
    """Close the store's connections and drop the singleton."""
    global _store_instance
    if _store_instance is not None:
        await _store_instance.close()
        _store_instance = None
