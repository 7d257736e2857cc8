"""SQLAlchemy-backed table store for a Postgres database."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from gtfs_refresh.logging import get_logger
from gtfs_refresh.services.store.base import StoreError, checked_column

if TYPE_CHECKING:
    from gtfs_refresh.services.gtfs_static.tables import GtfsTable

logger = get_logger(__name__)

# Postgres wire protocol limit on bind parameters per statement
MAX_BIND_PARAMS = 32767

# asyncpg surfaces refused or timed-out connects as plain OS errors
_STORE_ERRORS = (SQLAlchemyError, OSError, TimeoutError, asyncio.TimeoutError)


class SqlTableStore:
    """Runs truncate/insert/select as plain SQL over an async engine.

    Each call opens its own session and commits before returning, so a failed
    batch never rolls back batches that were already acknowledged.
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: AsyncEngine | None = None,
        echo: bool = False,
        timeout_sec: int = 30,
    ) -> None:
        if engine is None:
            if not database_url:
                msg = "database_url or engine is required"
                raise ValueError(msg)
            engine = create_async_engine(
                database_url,
                echo=echo,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                connect_args={"timeout": timeout_sec},
            )
        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def truncate(self, table: GtfsTable) -> None:
        layout = table.layout
        await self._execute_write([(text(f"DELETE FROM {layout.name}"), {})], layout.name)
        logger.info("Table truncated", table=layout.name)

    async def bulk_insert(self, table: GtfsTable, rows: list[dict[str, Any]]) -> int:
        """Insert rows with multi-VALUES statements in a single transaction.

        Rows are split across statements so none exceeds ``MAX_BIND_PARAMS``.
        """
        if not rows:
            return 0

        layout = table.layout
        columns = layout.fields
        column_list = ", ".join(columns)
        chunk_size = max(1, MAX_BIND_PARAMS // len(columns))

        statements: list[tuple[Any, dict[str, Any]]] = []
        for start in range(0, len(rows), chunk_size):
            chunk = rows[start : start + chunk_size]
            values_sql = ", ".join(
                "(" + ", ".join(f":{col}_{i}" for col in columns) + ")" for i in range(len(chunk))
            )
            params: dict[str, Any] = {}
            for i, row in enumerate(chunk):
                for col in columns:
                    params[f"{col}_{i}"] = row.get(col)
            stmt = text(f"INSERT INTO {layout.name} ({column_list}) VALUES {values_sql}")
            statements.append((stmt, params))

        rowcount = await self._execute_write(statements, layout.name)
        # Some drivers report -1 when the count is unknown
        return rowcount if rowcount >= 0 else len(rows)

    async def select(
        self,
        table: GtfsTable,
        column: str | None = None,
        value: str | None = None,
    ) -> list[dict[str, Any]]:
        layout = table.layout
        sql = f"SELECT {', '.join(layout.fields)} FROM {layout.name}"
        params: dict[str, Any] = {}
        if column is not None:
            sql += f" WHERE {checked_column(layout, column)} = :value"
            params["value"] = value

        try:
            async with self._session_factory() as session:
                result = await session.execute(text(sql), params)
                return [dict(row._mapping) for row in result.fetchall()]
        except _STORE_ERRORS as exc:
            msg = f"select from {layout.name} failed: {type(exc).__name__}: {exc}"
            logger.error(msg, table=layout.name, column=column)
            raise StoreError(msg) from exc

    async def ping(self) -> bool:
        """Check if the database is reachable."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def close(self) -> None:
        await self._engine.dispose()

    async def _execute_write(
        self, statements: list[tuple[Any, dict[str, Any]]], table: str
    ) -> int:
        """Run the statements in one transaction and return the summed rowcount."""
        try:
            async with self._session_factory() as session:
                try:
                    rowcount = 0
                    for stmt, params in statements:
                        result = await session.execute(stmt, params)
                        if rowcount >= 0:
                            rowcount = rowcount + result.rowcount if result.rowcount >= 0 else -1
                    await session.commit()
                except _STORE_ERRORS:
                    await session.rollback()
                    raise
                return rowcount
        except _STORE_ERRORS as exc:
            msg = f"write to {table} failed: {type(exc).__name__}: {exc}"
            raise StoreError(msg) from exc
