"""Column-level lineage index keyed by destination table."""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping

from ..core.models import ColumnLineageEdge
from ..core.parser import parse_column_lineage_rows

UNKNOWN_SOURCE = "(unknown source)"


class ColumnLineageIndex:
    """Column lineage edges grouped by destination table.

    Independent of the table graph: it is replaced on reload and never
    mutates it.
    """

    def __init__(self, edges: Iterable[ColumnLineageEdge] = ()):
        self.by_table: Dict[str, List[ColumnLineageEdge]] = {}
        for edge in edges:
            self.by_table.setdefault(edge.destination_table, []).append(edge)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]], dialect: str = "spark") -> "ColumnLineageIndex":
        return cls(parse_column_lineage_rows(rows, dialect=dialect))

    def __len__(self) -> int:
        return sum(len(edges) for edges in self.by_table.values())

    def has_lineage(self, table_name: str) -> bool:
        return bool(self.by_table.get(table_name))

    def edges_for(self, table_name: str) -> List[ColumnLineageEdge]:
        return list(self.by_table.get(table_name, []))

    def group_by_destination_column(self, table_name: str) -> "OrderedDict[str, List[ColumnLineageEdge]]":
        """Edges of a table grouped by destination column, in first-seen order."""
        groups: "OrderedDict[str, List[ColumnLineageEdge]]" = OrderedDict()
        for edge in self.by_table.get(table_name, []):
            groups.setdefault(edge.destination_column, []).append(edge)
        return groups

    def group_by_source_table(self, table_name: str) -> "OrderedDict[str, List[ColumnLineageEdge]]":
        """Edges of a table grouped by the source table they read from."""
        groups: "OrderedDict[str, List[ColumnLineageEdge]]" = OrderedDict()
        for edge in self.by_table.get(table_name, []):
            groups.setdefault(edge.source_table or UNKNOWN_SOURCE, []).append(edge)
        return groups
