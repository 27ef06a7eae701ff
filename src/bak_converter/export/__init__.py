"""Exporters for restored databases (SQLite file or JSON document).

Usage:
    from bak_converter.export import export_to_sqlite, export_to_json
    from bak_converter.export import ExportFormat, map_column_type, coerce_value
"""

from bak_converter.export.json_export import export_to_json
from bak_converter.export.sqlite import export_to_sqlite
from bak_converter.export.types import ExportFormat, TargetType, coerce_value, map_column_type

__all__ = [
    "ExportFormat",
    "TargetType",
    "coerce_value",
    "map_column_type",
    "export_to_json",
    "export_to_sqlite",
]
