"""Core lineage graph components."""

from .models import (
    TableNode, Relationship, LineageGraph, TableType, FilterScope, SearchScope,
    DestinationRoots, MatchingSources,
)
from .errors import LineageViewerError, LineageLoadError, InvalidRequestError, SchemaSaveError
from .parser import RelationshipParser, parse_relationships
from .graph_builder import LineageGraphBuilder, build_lineage_graph
from .traversal import render_tree, render_flow, paginated_source_list
from .filters import filter_roots, search_match, auto_expand_on_search

__all__ = [
    "TableNode",
    "Relationship",
    "LineageGraph",
    "TableType",
    "FilterScope",
    "SearchScope",
    "DestinationRoots",
    "MatchingSources",
    "LineageViewerError",
    "LineageLoadError",
    "InvalidRequestError",
    "SchemaSaveError",
    "RelationshipParser",
    "parse_relationships",
    "LineageGraphBuilder",
    "build_lineage_graph",
    "render_tree",
    "render_flow",
    "paginated_source_list",
    "filter_roots",
    "search_match",
    "auto_expand_on_search",
]
