"""Registry of user-editable table schemas."""

import csv
from typing import Dict, Iterable, List, Mapping, Any, Optional

import pandas as pd
import sqlglot.expressions as exp
from sqlglot.errors import SqlglotError

from ..core.models import SchemaColumn, display_name
from ..core.parser import SCHEMA_FIELDS, parse_schema_rows
from ..utils.logging_config import get_logger

DEFAULT_DATA_TYPE = "VARCHAR(255)"
DEFAULT_NULLABLE = "NO"
TABLE_EXPORT_HEADERS = ["Column", "Type", "Nullable", "Description", "Business Meaning", "Sample Values"]


class SchemaRegistry:
    """Registry for table schemas keyed by full table name.

    The registry is replaced wholesale on every reload and is the only state
    the user edits; edits are written back out as one complete CSV file.
    """

    def __init__(self, tables: Optional[Dict[str, List[SchemaColumn]]] = None):
        self.tables: Dict[str, List[SchemaColumn]] = dict(tables or {})
        self.logger = get_logger('metadata.schema_registry')

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "SchemaRegistry":
        """Build a registry from schema CSV rows."""
        return cls(parse_schema_rows(rows))

    def __len__(self) -> int:
        return len(self.tables)

    def has_schema(self, table_name: str) -> bool:
        return table_name in self.tables

    def get_table_schema(self, table_name: str) -> List[SchemaColumn]:
        """Get the columns of a table, or an empty list."""
        return list(self.tables.get(table_name, []))

    def set_table_schema(self, table_name: str, columns: Iterable[SchemaColumn]) -> List[SchemaColumn]:
        """
        Replace the schema of one table.

        Rows without a column name are dropped.

        Returns:
            The columns actually stored
        """
        valid = [column for column in columns if not column.is_blank]
        self.tables[table_name] = valid
        self.logger.info(f"Schema updated for {table_name}: {len(valid)} columns")
        return valid

    def to_csv(self) -> str:
        """Serialize every table schema into the schema CSV format."""
        rows = []
        for table_name in sorted(self.tables):
            for column in self.tables[table_name]:
                if column.is_blank:
                    continue
                rows.append([
                    table_name,
                    column.column_name,
                    column.data_type,
                    column.is_nullable or DEFAULT_NULLABLE,
                    column.description,
                    column.sample_values,
                    column.business_meaning,
                ])
        frame = pd.DataFrame(rows, columns=list(SCHEMA_FIELDS))
        return frame.to_csv(index=False, lineterminator="\n").rstrip("\n")

    def table_to_csv(self, table_name: str) -> str:
        """Export a single table schema with human-readable headers."""
        rows = [
            [
                column.column_name,
                column.data_type,
                column.is_nullable,
                column.description,
                column.business_meaning,
                column.sample_values,
            ]
            for column in self.tables.get(table_name, [])
        ]
        frame = pd.DataFrame(rows, columns=TABLE_EXPORT_HEADERS)
        return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n").rstrip("\n")

    def generate_ddl(self, table_name: str, dialect: str = "spark") -> str:
        """
        Generate a CREATE TABLE statement from a table schema.

        Args:
            table_name: Full table name (database qualifier is dropped)
            dialect: sqlglot dialect for rendering

        Returns:
            Pretty-printed DDL terminated by a semicolon

        Raises:
            ValueError: If the table has no named columns
        """
        columns = [column for column in self.tables.get(table_name, []) if not column.is_blank]
        if not columns:
            raise ValueError(f"No columns defined for {table_name}")

        column_defs = []
        for column in columns:
            constraints = []
            if column.is_nullable.upper() == DEFAULT_NULLABLE:
                constraints.append(exp.ColumnConstraint(kind=exp.NotNullColumnConstraint()))
            column_defs.append(exp.ColumnDef(
                this=exp.to_identifier(column.column_name),
                kind=self._build_data_type(column.data_type, dialect),
                constraints=constraints,
            ))

        table = exp.Table(this=exp.to_identifier(display_name(table_name)))
        create = exp.Create(
            this=exp.Schema(this=table, expressions=column_defs),
            kind="TABLE",
        )
        return create.sql(dialect=dialect, pretty=True) + ";"

    def _build_data_type(self, data_type: str, dialect: str) -> exp.DataType:
        try:
            return exp.DataType.build(data_type or DEFAULT_DATA_TYPE, dialect=dialect)
        except SqlglotError:
            self.logger.debug(f"Unrecognized data type {data_type!r}, keeping it as a user-defined type")
            return exp.DataType.build(data_type, dialect=dialect, udt=True)

    def to_dict(self, table_name: str) -> List[Dict[str, str]]:
        return [column.to_dict() for column in self.tables.get(table_name, [])]
