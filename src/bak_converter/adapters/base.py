"""SQL Server client protocol definition.

Defines the ``SqlServerClient`` Protocol that the pipeline talks to.  All
I/O methods are ``async def`` -- every query is a suspension point.

A client is owned by exactly one request.  It pins a single connection, so
``use_database()`` switches the database context for every later call on
the same client.

Usage:
    from bak_converter.adapters.base import SqlServerClient

    async def do_work(client: SqlServerClient) -> None:
        await client.use_database("DB_1718000000000")
        tables = await client.fetch_all(
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES"
        )
        async for row in client.stream_rows("customers", ["id", "name"]):
            print(row["id"], row["name"])
        await client.close()
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol


class SqlServerClient(Protocol):
    """Database client interface used by the conversion pipeline."""

    async def fetch_all(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return every row as a dict.

        Args:
            sql: Query text with ``:name`` bind parameters.
            params: Optional dict of bind parameter values.

        Returns:
            List of dicts, one per row.  Empty list if no rows.
        """
        ...

    def stream_rows(
        self,
        table: str,
        columns: Sequence[str],
        schema: str = "dbo",
    ) -> AsyncIterator[dict]:
        """Stream all rows of ``schema.table`` restricted to *columns*.

        Identifiers are quoted by the adapter; callers pass raw names.

        Example:
            async for row in client.stream_rows("orders", ["id", "total"]):
                ...
        """
        ...

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement that returns no rows (``ALTER``, ``DROP``...)."""
        ...

    async def execute_batch(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Execute a raw driver statement and drain every result set.

        Used for ``RESTORE DATABASE``, which reports progress as
        informational result sets and only completes once they are consumed.

        Args:
            sql: Statement text with ``?`` positional placeholders.
            params: Positional parameter values.
        """
        ...

    async def use_database(self, name: str) -> None:
        """Switch the pinned connection's database context to *name*."""
        ...

    async def test_connection(self) -> bool:
        """Return ``True`` if ``SELECT 1`` succeeds.

        Raises:
            Exception: If the connection cannot be established.
        """
        ...

    async def close(self) -> None:
        """Release the pinned connection and dispose of the pool."""
        ...
