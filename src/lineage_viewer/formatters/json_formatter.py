"""JSON output formatter."""

import json
from typing import Dict, Any, List, Optional, Tuple

from ..core.models import LineageGraph, TreeNodeView, FlowNodeView, SourcePage
from ..metadata.schema_registry import SchemaRegistry


def build_snapshot(product_name: str, graph: LineageGraph, schema: Optional[SchemaRegistry] = None) -> Dict[str, Any]:
    """
    Build the exportable snapshot of a loaded product.

    Args:
        product_name: Display name of the product
        graph: Built lineage graph
        schema: Schema registry whose columns are attached per table

    Returns:
        Dictionary with product, tables and relationships
    """
    tables = []
    # first-seen order, as the graph builder recorded it
    for name, node in graph.tables.items():
        tables.append({
            "name": node.name,
            "type": node.type,
            "database": node.database,
            "sources": list(node.source_names),
            "notebooks": list(node.notebooks),
            "schema": schema.to_dict(name) if schema is not None else [],
        })
    return {
        "product": product_name,
        "tables": tables,
        "relationships": [relationship.to_dict() for relationship in graph.relationships],
    }


def build_table_lineage(product_name: str,
                        table_name: str,
                        graph: LineageGraph,
                        walk: List[Tuple[int, str]]) -> Dict[str, Any]:
    """Export of a single table's upstream lineage as (depth, table) entries."""
    upstream = []
    for depth, name in walk:
        node = graph.resolve(name)
        upstream.append({
            "depth": depth,
            "name": name,
            "type": node.type,
            "database": node.database,
            "resolved": node.resolved,
        })
    return {
        "product": product_name,
        "table": table_name,
        "upstream": upstream,
    }


def tree_to_dict(node: TreeNodeView) -> Dict[str, Any]:
    return {
        "name": node.name,
        "type": node.type,
        "database": node.database,
        "depth": node.depth,
        "source_count": node.source_count,
        "notebook": node.notebook,
        "expandable": node.expandable,
        "expanded": node.expanded,
        "resolved": node.resolved,
        "children": [tree_to_dict(child) for child in node.children],
    }


def flow_to_dict(node: FlowNodeView) -> Dict[str, Any]:
    data = {
        "name": node.name,
        "type": node.type,
        "database": node.database,
        "depth": node.depth,
        "source_count": node.source_count,
        "resolved": node.resolved,
        "children": [flow_to_dict(child) for child in node.children],
    }
    if node.placeholder is not None:
        data["more"] = node.placeholder.hidden_count
    return data


def page_to_dict(page: SourcePage) -> Dict[str, Any]:
    return {
        "table": page.table_name,
        "page": page.page_index,
        "page_size": page.page_size,
        "page_count": page.page_count,
        "total": page.total,
        "entries": [
            {
                "position": entry.position,
                "name": entry.name,
                "type": entry.type,
                "database": entry.database,
                "resolved": entry.resolved,
            }
            for entry in page.entries
        ],
    }


class JSONFormatter:
    """Formats viewer data as JSON."""

    def __init__(self, indent: Optional[int] = 2):
        """
        Initialize JSON formatter.

        Args:
            indent: JSON indentation level (None for compact output)
        """
        self.indent = indent

    def format(self, data: Any) -> str:
        """
        Format any JSON-serializable value.

        Args:
            data: Value to serialize

        Returns:
            JSON string representation
        """
        return json.dumps(data, indent=self.indent, ensure_ascii=False)

    def format_snapshot(self, snapshot: Dict[str, Any]) -> str:
        return self.format(snapshot)

    def format_snapshot_to_file(self, snapshot: Dict[str, Any], file_path: str) -> None:
        """
        Write a snapshot to a file.

        Args:
            snapshot: Dictionary produced by build_snapshot
            file_path: Output file path
        """
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(self.format_snapshot(snapshot))

    def format_tree(self, nodes: List[TreeNodeView]) -> str:
        return self.format([tree_to_dict(node) for node in nodes])

    def format_flow(self, node: FlowNodeView) -> str:
        return self.format(flow_to_dict(node))

    def format_page(self, page: SourcePage) -> str:
        return self.format(page_to_dict(page))
