"""Export a restored database to a serialized SQLite file.

The SQLite database lives only in memory.  It is serialized to bytes once
every table has been copied and closed afterwards, on success and on
failure alike.

Usage:
    from bak_converter.export.sqlite import export_to_sqlite

    data = await export_to_sqlite(client)
    Path("DB_1718000000000.sqlite").write_bytes(data)
"""

import logging
import sqlite3
from contextlib import aclosing

from bak_converter.adapters.base import SqlServerClient
from bak_converter.errors import ConverterError, ExportFailed
from bak_converter.export.types import ExportFormat, check_export_names, coerce_value, map_column_type
from bak_converter.identifiers import quote_sqlite_identifier
from bak_converter.schema.introspector import SchemaIntrospector
from bak_converter.schema.models import TableSchema

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def build_create_table(table: TableSchema) -> str:
    """Build the SQLite ``CREATE TABLE`` statement for *table*.

    Example:
        >>> from bak_converter.schema.models import ColumnSchema
        >>> build_create_table(TableSchema(name="t", columns=[
        ...     ColumnSchema(name="id", data_type="int", is_nullable=False),
        ...     ColumnSchema(name="name", data_type="nvarchar"),
        ... ]))
        'CREATE TABLE "t" ("id" INTEGER NOT NULL, "name" TEXT)'
    """
    definitions: list[str] = []
    for col in table.columns:
        definition = f"{quote_sqlite_identifier(col.name)} {map_column_type(col.data_type).value}"
        if not col.is_nullable:
            definition += " NOT NULL"
        definitions.append(definition)
    return (
        f"CREATE TABLE {quote_sqlite_identifier(table.qualified_name)} "
        f"({', '.join(definitions)})"
    )


def build_insert(table: TableSchema) -> str:
    """Build the parameterized ``INSERT`` reused for every row of *table*."""
    columns = ", ".join(quote_sqlite_identifier(name) for name in table.column_names)
    placeholders = ", ".join("?" for _ in table.columns)
    return (
        f"INSERT INTO {quote_sqlite_identifier(table.qualified_name)} "
        f"({columns}) VALUES ({placeholders})"
    )


async def export_to_sqlite(
    client: SqlServerClient,
    introspector: SchemaIntrospector | None = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> bytes:
    """Copy every base table of the current database into SQLite.

    For each table, in introspection order: create it with mapped column
    types (``NOT NULL`` carried over), then stream its rows through
    ``coerce_value`` into one prepared ``INSERT`` executed in batches.

    Args:
        client: Client already switched to the restored database.
        introspector: Schema source (default: ``SchemaIntrospector(client)``).
        batch_size: Rows buffered per ``executemany`` call.

    Returns:
        The serialized SQLite database file.

    Raises:
        SchemaQueryFailed: If introspection fails.
        ExportFailed: If table creation, row fetch or insertion fails.
    """
    introspector = introspector or SchemaIntrospector(client)
    tables = await introspector.introspect()
    check_export_names((t.qualified_name for t in tables if t.columns), case_sensitive=False)

    logger.info("Converting %d table(s) to SQLite", len(tables))
    sqlite_db = sqlite3.connect(":memory:")
    try:
        for table in tables:
            if not table.columns:
                logger.warning("Skipping table %s: no columns", table.qualified_name)
                continue
            await _copy_table(client, sqlite_db, table, batch_size)
        # An untouched database has no pages and cannot be serialized
        sqlite_db.execute("PRAGMA user_version = 0")
        sqlite_db.commit()
        return sqlite_db.serialize()
    except ConverterError:
        raise
    except Exception as exc:
        raise ExportFailed(f"SQLite export failed: {exc}") from exc
    finally:
        sqlite_db.close()
        logger.debug("SQLite database closed")


async def _copy_table(
    client: SqlServerClient,
    sqlite_db: sqlite3.Connection,
    table: TableSchema,
    batch_size: int,
) -> None:
    sqlite_db.execute(build_create_table(table))
    insert_sql = build_insert(table)
    columns = table.column_names

    batch: list[tuple] = []
    copied = 0
    async with aclosing(client.stream_rows(table.name, columns, schema=table.schema_name)) as rows:
        async for row in rows:
            batch.append(tuple(coerce_value(row[name], ExportFormat.SQLITE) for name in columns))
            if len(batch) >= batch_size:
                sqlite_db.executemany(insert_sql, batch)
                copied += len(batch)
                batch.clear()
    if batch:
        sqlite_db.executemany(insert_sql, batch)
        copied += len(batch)

    logger.debug("Copied %d row(s) into %s", copied, table.qualified_name)
