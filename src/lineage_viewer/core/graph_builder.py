"""Builds the table lineage graph from parsed relationships."""

import re
from typing import Iterable, List, Optional, Set

from .models import LineageGraph, Relationship, TableNode, ALL_DATABASES
from ..utils.logging_config import get_logger, log_performance

DATABASE_PATTERN = re.compile(r'\((.+?)\.db\)')

logger = get_logger('graph_builder')


def extract_database(table_name: Optional[str]) -> Optional[str]:
    """
    Extract the database qualifier embedded in a table name.

    Args:
        table_name: Name such as 'orders(sales.db)'

    Returns:
        The database ('sales'), or None when the name has no qualifier
    """
    if not table_name:
        return None
    match = DATABASE_PATTERN.search(table_name)
    return match.group(1) if match else None


class LineageGraphBuilder:
    """Folds relationships into a table registry with destination -> sources adjacency."""

    def __init__(self):
        self.logger = get_logger('graph_builder.builder')

    @log_performance(logger)
    def build(self, relationships: Iterable[Relationship]) -> LineageGraph:
        """
        Build a complete lineage graph.

        Args:
            relationships: Relationships in emission order

        Returns:
            LineageGraph with tables, sorted roots and the database list
        """
        graph = LineageGraph()
        destination_names: Set[str] = set()
        self_references = 0

        for rel in relationships:
            graph.relationships.append(rel)
            destination = self._ensure_node(graph, rel.destination, rel.destination_type)
            self._ensure_node(graph, rel.source, rel.source_type)
            destination_names.add(rel.destination)

            if rel.source == rel.destination:
                self_references += 1
            destination.add_source(rel.source)
            destination.add_notebook(rel.notebook)

        graph.roots = sorted(
            (graph.tables[name] for name in destination_names),
            key=lambda node: node.name,
        )
        graph.databases = self._collect_databases(graph.tables.values())

        if self_references:
            self.logger.warning(f"Ignored {self_references} self-referencing relationships")
        self.logger.info(
            f"Processed {len(graph.relationships)} relationships, "
            f"{len(graph.tables)} tables, {len(graph.roots)} destination tables"
        )
        return graph

    def _ensure_node(self, graph: LineageGraph, name: str, table_type: Optional[str]) -> TableNode:
        node = graph.tables.get(name)
        if node is None:
            node = TableNode(name=name, type=table_type, database=extract_database(name))
            graph.tables[name] = node
        return node

    def _collect_databases(self, nodes: Iterable[TableNode]) -> List[str]:
        databases = {node.database for node in nodes if node.database}
        return [ALL_DATABASES] + sorted(databases)


def build_lineage_graph(relationships: Iterable[Relationship]) -> LineageGraph:
    """Convenience function to build a graph from relationships."""
    return LineageGraphBuilder().build(relationships)
