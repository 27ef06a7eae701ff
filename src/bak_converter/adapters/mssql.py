"""Async SQL Server adapter.

Provides ``AsyncSqlServerAdapter``, an async implementation of the
``SqlServerClient`` protocol using SQLAlchemy's async engine with the
``aioodbc`` driver.

Usage:
    from bak_converter.adapters.mssql import AsyncSqlServerAdapter
    from bak_converter.config import ServerProfile

    adapter = AsyncSqlServerAdapter.from_profile(ServerProfile(host="localhost"))
    await adapter.test_connection()
    rows = await adapter.fetch_all("SELECT name FROM sys.databases")
    await adapter.close()
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any

from sqlalchemy import column, select, table, text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from bak_converter.config.models import ServerProfile
from bak_converter.identifiers import quote_mssql_identifier


def create_async_engine_pooled(database_url: URL | str, **kwargs: Any) -> AsyncEngine:
    """Create an async SQLAlchemy engine for SQL Server.

    Default pool settings:

    - ``pool_size=10``: One request pins one connection; headroom for pings.
    - ``max_overflow=0``: The request owns the pool outright.
    - ``pool_pre_ping=True``: Validate connections before checkout.
    - ``pool_recycle=300``: Recycle connections every 5 minutes.
    - ``isolation_level="AUTOCOMMIT"``: ``RESTORE``, ``ALTER DATABASE`` and
      ``DROP DATABASE`` cannot run inside a transaction.

    Args:
        database_url: ``mssql+aioodbc://`` URL.
        **kwargs: Additional keyword arguments forwarded to
            ``create_async_engine``.

    Returns:
        Configured ``AsyncEngine``.
    """
    defaults: dict[str, Any] = {
        "pool_size": 10,
        "max_overflow": 0,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "isolation_level": "AUTOCOMMIT",
        "echo": False,
    }
    # Caller kwargs override defaults
    merged = {**defaults, **kwargs}

    return create_async_engine(database_url, **merged)


class AsyncSqlServerAdapter:
    """Async SQL Server implementation of the ``SqlServerClient`` protocol.

    The adapter checks out one connection on first use and keeps it for its
    whole lifetime, so ``USE`` statements stick across calls.  The pool
    behind it is disposed in ``close()``.

    Args:
        database_url: ``mssql+aioodbc://`` URL (usually built with
            ``ServerProfile.url()``).
        **engine_kwargs: Additional keyword arguments forwarded to
            ``create_async_engine_pooled``.
    """

    def __init__(self, database_url: URL | str, **engine_kwargs: Any) -> None:
        self._engine: AsyncEngine = create_async_engine_pooled(database_url, **engine_kwargs)
        self._conn: AsyncConnection | None = None

    @classmethod
    def from_profile(cls, profile: ServerProfile) -> "AsyncSqlServerAdapter":
        """Build an adapter connected to ``master`` from a server profile."""
        return cls(
            profile.url(),
            pool_size=profile.pool_size,
            max_overflow=profile.max_overflow,
            pool_recycle=profile.pool_recycle,
        )

    async def _connection(self) -> AsyncConnection:
        if self._conn is None:
            self._conn = await self._engine.connect()
        return self._conn

    # ------------------------------------------------------------------
    # Query Methods
    # ------------------------------------------------------------------

    async def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return every row as a dict."""
        conn = await self._connection()
        result = await conn.execute(text(sql), params or {})
        return [dict(row) for row in result.mappings().all()]

    async def stream_rows(
        self,
        table_name: str,
        columns: Sequence[str],
        schema: str = "dbo",
    ) -> AsyncIterator[dict]:
        """Stream rows with a server-side cursor.

        The ``SELECT`` is built with SQLAlchemy Core so table and column
        names are quoted by the dialect.
        """
        source = table(table_name, *(column(name) for name in columns), schema=schema)
        stmt = select(*(source.c[name] for name in columns))

        conn = await self._connection()
        result = await conn.stream(stmt)
        try:
            async for row in result.mappings():
                yield dict(row)
        finally:
            await result.close()

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement that returns no rows."""
        conn = await self._connection()
        await conn.execute(text(sql), params or {})

    async def execute_batch(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Execute a raw driver statement and drain every result set.

        The ODBC driver returns from ``RESTORE`` as soon as the first
        informational message arrives; the restore only runs to completion
        while the remaining result sets are consumed.
        """
        conn = await self._connection()
        raw = await conn.get_raw_connection()
        cursor = await raw.driver_connection.cursor()
        try:
            await cursor.execute(sql, *params)
            while await cursor.nextset():
                pass
        finally:
            await cursor.close()

    async def use_database(self, name: str) -> None:
        """Switch the pinned connection to *name*."""
        await self.execute(f"USE {quote_mssql_identifier(name)}")

    # ------------------------------------------------------------------
    # Connection Lifecycle
    # ------------------------------------------------------------------

    async def test_connection(self) -> bool:
        """Open the pinned connection and run ``SELECT 1``.

        Returns:
            ``True`` if the database connection succeeds.

        Raises:
            Exception: If the database connection fails.
        """
        conn = await self._connection()
        result = await conn.execute(text("SELECT 1"))
        return result.scalar() == 1

    async def close(self) -> None:
        """Close the pinned connection and dispose of the connection pool."""
        try:
            if self._conn is not None:
                await self._conn.close()
        finally:
            self._conn = None
            await self._engine.dispose()
