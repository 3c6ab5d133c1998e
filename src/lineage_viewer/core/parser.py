"""Parsers turning raw CSV rows into relationships, schema columns and column lineage."""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import Relationship, SchemaColumn, ColumnLineageEdge, TransformationType
from .transformation_classifier import classify_transformation
from ..utils.logging_config import get_logger

LINEAGE_FIELDS = ("notebook_name", "source_table", "source_type", "destination_table", "destination_type")
SCHEMA_FIELDS = (
    "table_name", "column_name", "data_type", "is_nullable",
    "description", "sample_values", "business_meaning",
)
COLUMN_LINEAGE_FIELDS = (
    "destination_table", "source_table", "source_column", "destination_column",
    "transformation_type", "transformation_expr", "notebook",
)

Row = Mapping[str, Any]


def clean_field(value: Any) -> Optional[str]:
    """Trim a raw cell; None, NaN and whitespace-only cells are absent."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


class RelationshipParser:
    """Two-pass parser reconstructing notebook -> source -> destination relationships.

    Some exports declare a notebook's destination on one row and list further
    sources on rows that leave the destination empty. The first pass records
    every destination seen per notebook; the second pass emits relationships,
    attaching source-only rows to all destinations of their notebook.
    """

    def __init__(self):
        self.logger = get_logger('parser.relationships')

    def parse(self, rows: Iterable[Row]) -> List[Relationship]:
        """
        Parse raw lineage rows into relationships.

        Args:
            rows: Mappings keyed by the lineage CSV header

        Returns:
            Relationships in emission order
        """
        normalized = [self._normalize(row) for row in rows]
        notebook_destinations = self._collect_notebook_destinations(normalized)

        relationships: List[Relationship] = []
        dropped = 0
        for row in normalized:
            notebook = row["notebook_name"]
            source = row["source_table"]
            destination = row["destination_table"]

            if source and destination:
                relationships.append(Relationship(
                    notebook=notebook,
                    source=source,
                    source_type=row["source_type"],
                    destination=destination,
                    destination_type=row["destination_type"],
                ))
            elif source and notebook:
                for inferred_destination, inferred_type in notebook_destinations.get(notebook, []):
                    if source == inferred_destination:
                        continue
                    relationships.append(Relationship(
                        notebook=notebook,
                        source=source,
                        source_type=row["source_type"],
                        destination=inferred_destination,
                        destination_type=inferred_type,
                    ))
            else:
                dropped += 1

        self.logger.info(
            f"Parsed {len(relationships)} relationships from {len(normalized)} rows "
            f"({dropped} incomplete rows dropped, {len(notebook_destinations)} notebooks with destinations)"
        )
        return relationships

    def _normalize(self, row: Row) -> Dict[str, Optional[str]]:
        return {name: clean_field(row.get(name)) for name in LINEAGE_FIELDS}

    def _collect_notebook_destinations(self, rows: List[Dict[str, Optional[str]]]) -> Dict[str, List[tuple]]:
        """First pass: distinct (destination, destination_type) pairs per notebook."""
        destinations: Dict[str, List[tuple]] = {}
        for row in rows:
            notebook = row["notebook_name"]
            destination = row["destination_table"]
            if not notebook or not destination:
                continue
            known = destinations.setdefault(notebook, [])
            if all(existing != destination for existing, _ in known):
                known.append((destination, row["destination_type"]))
        return destinations


def parse_relationships(rows: Iterable[Row]) -> List[Relationship]:
    """Convenience function to parse lineage rows."""
    return RelationshipParser().parse(rows)


def parse_schema_rows(rows: Iterable[Row]) -> Dict[str, List[SchemaColumn]]:
    """Group schema rows by table name, preserving row order within a table."""
    schema: Dict[str, List[SchemaColumn]] = {}
    for row in rows:
        table_name = clean_field(row.get("table_name"))
        if not table_name:
            continue
        schema.setdefault(table_name, []).append(SchemaColumn(
            column_name=clean_field(row.get("column_name")) or "",
            data_type=clean_field(row.get("data_type")) or "",
            is_nullable=clean_field(row.get("is_nullable")) or "",
            description=clean_field(row.get("description")) or "",
            sample_values=clean_field(row.get("sample_values")) or "",
            business_meaning=clean_field(row.get("business_meaning")) or "",
        ))
    return schema


def parse_column_lineage_rows(rows: Iterable[Row], dialect: str = "spark") -> List[ColumnLineageEdge]:
    """Parse column lineage rows; a missing or unknown type is inferred from the expression."""
    logger = get_logger('parser.column_lineage')
    edges: List[ColumnLineageEdge] = []
    inferred = 0
    for row in rows:
        destination_table = clean_field(row.get("destination_table"))
        destination_column = clean_field(row.get("destination_column"))
        if not destination_table or not destination_column:
            continue

        expression = clean_field(row.get("transformation_expr"))
        transformation_type = TransformationType.parse(clean_field(row.get("transformation_type")))
        if transformation_type is None or transformation_type == TransformationType.UNKNOWN:
            transformation_type = classify_transformation(expression, dialect=dialect)
            inferred += 1

        edges.append(ColumnLineageEdge(
            destination_table=destination_table,
            destination_column=destination_column,
            source_table=clean_field(row.get("source_table")),
            source_column=clean_field(row.get("source_column")),
            transformation_type=transformation_type,
            transformation_expr=expression,
            notebook=clean_field(row.get("notebook")),
        ))

    logger.info(f"Parsed {len(edges)} column lineage edges ({inferred} transformation types inferred)")
    return edges
