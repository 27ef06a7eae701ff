"""SQL Server schema introspection via INFORMATION_SCHEMA.

Extracts, for the database the client is currently using:
- Base tables (schema-qualified, ordered by schema then name)
- Columns per table in ordinal order (type, length, precision, nullability)

Read-only; every query error is reported as ``SchemaQueryFailed``.
"""

import logging

from bak_converter.adapters.base import SqlServerClient
from bak_converter.errors import SchemaQueryFailed
from bak_converter.schema.models import ColumnSchema, TableSchema

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects the tables and columns of a restored database.

    Usage:
        introspector = SchemaIntrospector(client)

        # Tables with ordered columns
        tables = await introspector.introspect()

        # Or step by step
        for table in await introspector.get_tables():
            columns = await introspector.get_columns(table)
    """

    # Tables to exclude from introspection (SSMS diagram support table)
    DEFAULT_EXCLUDED_TABLES: frozenset[str] = frozenset({"sysdiagrams"})

    def __init__(
        self,
        client: SqlServerClient,
        excluded_tables: set[str] | frozenset[str] | None = None,
    ) -> None:
        """Initialize with a client already switched to the target database.

        Args:
            client: Connected ``SqlServerClient``.
            excluded_tables: Table names to skip (default: ``sysdiagrams``).
        """
        self._client = client
        self.excluded_tables: frozenset[str] = (
            frozenset(excluded_tables)
            if excluded_tables is not None
            else self.DEFAULT_EXCLUDED_TABLES
        )

    async def introspect(self) -> list[TableSchema]:
        """Return every base table with its ordered columns."""
        tables = await self.get_tables()
        for table in tables:
            table.columns = await self.get_columns(table)
        logger.info("Introspected %d table(s)", len(tables))
        return tables

    async def get_tables(self) -> list[TableSchema]:
        """Get base tables (without columns) in schema/name order."""
        query = """
            SELECT TABLE_SCHEMA, TABLE_NAME
            FROM INFORMATION_SCHEMA.TABLES
            WHERE TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_SCHEMA, TABLE_NAME
        """
        try:
            rows = await self._client.fetch_all(query)
        except Exception as exc:
            raise SchemaQueryFailed(f"Could not list tables: {exc}") from exc

        return [
            TableSchema(name=row["TABLE_NAME"], schema_name=row["TABLE_SCHEMA"])
            for row in rows
            if row["TABLE_NAME"] not in self.excluded_tables
        ]

    async def get_columns(self, table: TableSchema) -> list[ColumnSchema]:
        """Get columns for a table in ordinal order."""
        query = """
            SELECT
                COLUMN_NAME,
                DATA_TYPE,
                CHARACTER_MAXIMUM_LENGTH,
                NUMERIC_PRECISION,
                NUMERIC_SCALE,
                IS_NULLABLE
            FROM INFORMATION_SCHEMA.COLUMNS
            WHERE TABLE_SCHEMA = :schema
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
        """
        try:
            rows = await self._client.fetch_all(
                query, {"schema": table.schema_name, "table": table.name}
            )
        except Exception as exc:
            raise SchemaQueryFailed(
                f"Could not list columns of {table.qualified_name}: {exc}"
            ) from exc

        return [
            ColumnSchema(
                name=row["COLUMN_NAME"],
                data_type=row["DATA_TYPE"],
                max_length=row.get("CHARACTER_MAXIMUM_LENGTH"),
                numeric_precision=row.get("NUMERIC_PRECISION"),
                numeric_scale=row.get("NUMERIC_SCALE"),
                is_nullable=(row["IS_NULLABLE"] == "YES"),
            )
            for row in rows
        ]
