"""Export a restored database as a JSON-ready mapping.

Binary values and strings longer than the configured limit are replaced by
``""`` to bound the response size.
"""

import logging
from contextlib import aclosing
from typing import Any

from bak_converter.adapters.base import SqlServerClient
from bak_converter.errors import ConverterError, ExportFailed
from bak_converter.export.types import (
    DEFAULT_MAX_JSON_STRING_LENGTH,
    ExportFormat,
    check_export_names,
    coerce_value,
)
from bak_converter.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)


async def export_to_json(
    client: SqlServerClient,
    introspector: SchemaIntrospector | None = None,
    *,
    max_string_length: int = DEFAULT_MAX_JSON_STRING_LENGTH,
) -> dict[str, list[dict[str, Any]]]:
    """Read every base table into ``{table_name: [row, ...]}``.

    Args:
        client: Client already switched to the restored database.
        introspector: Schema source (default: ``SchemaIntrospector(client)``).
        max_string_length: Strings longer than this become ``""``.

    Returns:
        Mapping of table name to rows (column name -> coerced value), tables
        in introspection order, columns in ordinal order.

    Raises:
        SchemaQueryFailed: If introspection fails.
        ExportFailed: If a row fetch fails.

    Example:
        document = await export_to_json(client)
        document["customers"][0]["name"]
    """
    introspector = introspector or SchemaIntrospector(client)
    tables = await introspector.introspect()
    check_export_names(t.qualified_name for t in tables)

    logger.info("Converting %d table(s) to JSON", len(tables))
    document: dict[str, list[dict[str, Any]]] = {}
    try:
        for table in tables:
            columns = table.column_names
            rows: list[dict[str, Any]] = []
            stream = client.stream_rows(table.name, columns, schema=table.schema_name)
            async with aclosing(stream) as source:
                async for row in source:
                    rows.append(
                        {
                            name: coerce_value(
                                row[name],
                                ExportFormat.JSON,
                                max_string_length=max_string_length,
                            )
                            for name in columns
                        }
                    )
            document[table.qualified_name] = rows
    except ConverterError:
        raise
    except Exception as exc:
        raise ExportFailed(f"JSON export failed: {exc}") from exc

    return document
