"""Type mapping from SQL Server to the export targets.

Both functions are total: unknown column types and unknown Python values
degrade to text instead of raising.

Usage:
    >>> map_column_type("nvarchar")
    <TargetType.TEXT: 'TEXT'>
    >>> map_column_type("bigint")
    <TargetType.INTEGER: 'INTEGER'>
    >>> map_column_type("geography")    # unknown -> TEXT (lossy)
    <TargetType.TEXT: 'TEXT'>
    >>> coerce_value(b"\\x00\\x01", ExportFormat.JSON)
    ''
"""

import json
from collections.abc import Iterable
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from bak_converter.errors import ExportFailed

DEFAULT_MAX_JSON_STRING_LENGTH = 1500


class TargetType(str, Enum):
    """SQLite storage class used for an exported column."""

    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"


class ExportFormat(str, Enum):
    """Export target; also selects the value coercion rules."""

    SQLITE = "sqlite"
    JSON = "json"


_TYPE_MAP: dict[str, TargetType] = {
    # Character
    "char": TargetType.TEXT,
    "varchar": TargetType.TEXT,
    "nchar": TargetType.TEXT,
    "nvarchar": TargetType.TEXT,
    "text": TargetType.TEXT,
    "ntext": TargetType.TEXT,
    "uniqueidentifier": TargetType.TEXT,
    "xml": TargetType.TEXT,
    # Boolean / integer
    "bit": TargetType.INTEGER,
    "tinyint": TargetType.INTEGER,
    "smallint": TargetType.INTEGER,
    "int": TargetType.INTEGER,
    "bigint": TargetType.INTEGER,
    # Floating / decimal
    "float": TargetType.REAL,
    "real": TargetType.REAL,
    "decimal": TargetType.REAL,
    "numeric": TargetType.REAL,
    "money": TargetType.REAL,
    "smallmoney": TargetType.REAL,
    # Date / time
    "date": TargetType.TEXT,
    "time": TargetType.TEXT,
    "datetime": TargetType.TEXT,
    "datetime2": TargetType.TEXT,
    "smalldatetime": TargetType.TEXT,
    "datetimeoffset": TargetType.TEXT,
    "timestamp": TargetType.TEXT,
}


def map_column_type(source_type: str | None) -> TargetType:
    """Map a SQL Server ``DATA_TYPE`` to a SQLite storage type.

    Unrecognized types (``geography``, ``sql_variant``, user types...) map
    to ``TEXT``.  That is lossy for binary-ish types but never fails.
    """
    if not source_type:
        return TargetType.TEXT
    return _TYPE_MAP.get(source_type.strip().lower(), TargetType.TEXT)


def coerce_value(
    value: Any,
    target: ExportFormat = ExportFormat.SQLITE,
    *,
    max_string_length: int = DEFAULT_MAX_JSON_STRING_LENGTH,
) -> Any:
    """Convert a fetched cell value into something the target can store.

    Rules:

    - ``None`` stays ``None``.
    - ``int``, ``float`` and ``str`` pass through.  On the JSON path a
      string longer than *max_string_length* becomes ``""``.
    - ``bool`` passes through for JSON and becomes ``0``/``1`` for SQLite.
    - ``Decimal`` becomes ``float``.
    - Binary (``bytes``, ``bytearray``, ``memoryview``) passes through as
      ``bytes`` for SQLite and becomes ``""`` for JSON (dropped, not encoded).
    - Dates and times become ISO-8601 text; ``UUID`` becomes its string form.
    - Anything else is serialized with ``json.dumps``.

    Args:
        value: Cell value as returned by the driver.
        target: Export target whose rules apply.
        max_string_length: JSON-path string limit.

    Returns:
        Coerced value.
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value if target is ExportFormat.JSON else int(value)

    if isinstance(value, str):
        if target is ExportFormat.JSON and len(value) > max_string_length:
            return ""
        return value

    if isinstance(value, (int, float)):
        return value

    if isinstance(value, Decimal):
        return float(value)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return "" if target is ExportFormat.JSON else bytes(value)

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, UUID):
        return str(value)

    return json.dumps(value, default=str)


def check_export_names(names: Iterable[str], *, case_sensitive: bool = True) -> None:
    """Raise ``ExportFailed`` if two tables would export under the same name.

    A ``dbo`` table literally named ``sales.orders`` and table ``orders`` in
    schema ``sales`` both export as ``sales.orders``.  SQLite compares table
    names case-insensitively, so the SQLite path passes
    ``case_sensitive=False``.
    """
    seen: dict[str, str] = {}
    for name in names:
        key = name if case_sensitive else name.casefold()
        if key in seen:
            raise ExportFailed(
                f"Tables {seen[key]!r} and {name!r} map to the same export name"
            )
        seen[key] = name
