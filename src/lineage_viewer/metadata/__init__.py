"""Schema and column lineage metadata."""

from .schema_registry import SchemaRegistry
from .column_lineage import ColumnLineageIndex

__all__ = ["SchemaRegistry", "ColumnLineageIndex"]
