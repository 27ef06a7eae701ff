"""Pydantic models for schema introspection.

Only tables and columns are modelled; indexes, constraints, triggers and
procedures of the restored database are not carried into the export.
"""

from pydantic import BaseModel, Field


# ============================================================================
# Schema Introspection Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a source column.

    Example:
        >>> col = ColumnSchema(name="id", data_type="int", is_nullable=False)
        >>> col.max_length is None
        True
    """

    name: str
    data_type: str
    max_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    is_nullable: bool = True


class TableSchema(BaseModel):
    """Schema for a source base table.

    Example:
        >>> TableSchema(name="orders").qualified_name
        'orders'
        >>> TableSchema(name="orders", schema_name="sales").qualified_name
        'sales.orders'
    """

    name: str
    schema_name: str = "dbo"
    columns: list[ColumnSchema] = Field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        """Export name: bare for ``dbo`` tables, ``schema.table`` otherwise."""
        if self.schema_name == "dbo":
            return self.name
        return f"{self.schema_name}.{self.name}"

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]
