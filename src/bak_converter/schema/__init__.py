"""Schema introspection of restored databases.

Usage:
    from bak_converter.schema import SchemaIntrospector, TableSchema, ColumnSchema
"""

from bak_converter.schema.introspector import SchemaIntrospector
from bak_converter.schema.models import ColumnSchema, TableSchema

__all__ = ["SchemaIntrospector", "TableSchema", "ColumnSchema"]
