"""
Bounded, cycle-safe traversal of the lineage graph.

Every function here is pure: it reads the built graph plus caller-owned
state (expanded names, limits) and returns an immutable view model. Cycle
protection uses a visited set carried along the current path only, so a
table reachable through two sibling branches is rendered under both, while
A -> B -> A stops at the second A.
"""

import math
from typing import Callable, Collection, FrozenSet, List, Optional, Tuple

from .models import (
    LineageGraph, TableNode, TreeNodeView, FlowNodeView, MorePlaceholder,
    SourceEntry, SourcePage,
)
from ..utils.validation import validate_page_size

DEFAULT_TREE_DEPTH = 2
DEFAULT_FLOW_DEPTH = 1
DEFAULT_FLOW_BREADTH = 8
DEFAULT_PAGE_SIZE = 10

NodePredicate = Callable[[TableNode], bool]


def render_tree(graph: LineageGraph,
                root_name: str,
                max_depth: int = DEFAULT_TREE_DEPTH,
                expanded: Collection[str] = (),
                filter_predicate: Optional[NodePredicate] = None,
                search_predicate: Optional[NodePredicate] = None) -> Optional[TreeNodeView]:
    """
    Render the tree browser entry for one root.

    Args:
        graph: Built lineage graph
        root_name: Table to render at depth 0
        max_depth: Deepest level that is rendered; nodes there are leaves
        expanded: Names whose children should be materialized
        filter_predicate: Applied at every depth; failing nodes are omitted
        search_predicate: Applied at depth 0 only; failing roots are omitted

    Returns:
        TreeNodeView, or None when the root is suppressed
    """
    expanded_names = frozenset(expanded)

    def visit(name: str, depth: int, visited: FrozenSet[str]) -> Optional[TreeNodeView]:
        if name in visited:
            return None
        node = graph.resolve(name)
        if filter_predicate is not None and not filter_predicate(node):
            return None
        if depth == 0 and search_predicate is not None and not search_predicate(node):
            return None

        expandable = node.has_sources and depth < max_depth
        is_expanded = expandable and name in expanded_names
        children: Tuple[TreeNodeView, ...] = ()
        if is_expanded:
            path = visited | {name}
            rendered = (visit(source, depth + 1, path) for source in node.source_names)
            children = tuple(child for child in rendered if child is not None)

        return TreeNodeView(
            name=name,
            type=node.type,
            database=node.database,
            depth=depth,
            source_count=node.source_count,
            notebook=node.notebooks[0] if node.notebooks else None,
            expandable=expandable,
            expanded=is_expanded,
            resolved=node.resolved,
            children=children,
        )

    return visit(root_name, 0, frozenset())


def render_flow(graph: LineageGraph,
                root_name: str,
                max_depth: int = DEFAULT_FLOW_DEPTH,
                max_breadth: int = DEFAULT_FLOW_BREADTH) -> Optional[FlowNodeView]:
    """
    Render the flow diagram for a selected table.

    Only the first ``max_breadth`` sources of each node are recursed into;
    the remainder is summarized by a single MorePlaceholder.

    Returns:
        FlowNodeView, or None when root_name is not a known table
    """
    if root_name not in graph:
        return None

    def visit(name: str, depth: int, visited: FrozenSet[str]) -> Optional[FlowNodeView]:
        if name in visited or depth > max_depth:
            return None
        node = graph.resolve(name)

        children: Tuple[FlowNodeView, ...] = ()
        placeholder = None
        if node.has_sources and depth < max_depth:
            path = visited | {name}
            shown = node.source_names[:max_breadth]
            rendered = (visit(source, depth + 1, path) for source in shown)
            children = tuple(child for child in rendered if child is not None)
            hidden = node.source_count - len(shown)
            if hidden > 0:
                placeholder = MorePlaceholder(hidden_count=hidden)

        return FlowNodeView(
            name=name,
            type=node.type,
            database=node.database,
            depth=depth,
            source_count=node.source_count,
            resolved=node.resolved,
            children=children,
            placeholder=placeholder,
        )

    return visit(root_name, 0, frozenset())


def needs_list_view(graph: LineageGraph, root_name: str, max_breadth: int = DEFAULT_FLOW_BREADTH) -> bool:
    """True when a table has more direct sources than the flow view can show."""
    node = graph.get(root_name)
    return node is not None and node.source_count > max_breadth


def page_count(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


def paginated_source_list(graph: LineageGraph,
                          root_name: str,
                          page_size: int = DEFAULT_PAGE_SIZE,
                          page_index: int = 0) -> SourcePage:
    """
    Slice a table's direct sources into a page.

    Args:
        graph: Built lineage graph
        root_name: Table whose sources are listed
        page_size: Entries per page (must be positive)
        page_index: Zero-based page number; out-of-range pages are empty

    Returns:
        SourcePage with entries numbered from 1 across the whole list
    """
    error = validate_page_size(page_size)
    if error:
        raise ValueError(error)

    node = graph.get(root_name)
    sources = node.source_names if node else []
    start = page_index * page_size if page_index >= 0 else len(sources)

    entries = []
    for offset, source_name in enumerate(sources[start:start + page_size]):
        source = graph.resolve(source_name)
        entries.append(SourceEntry(
            position=start + offset + 1,
            name=source_name,
            type=source.type,
            database=source.database,
            resolved=source.resolved,
        ))

    return SourcePage(
        table_name=root_name,
        page_index=page_index,
        page_size=page_size,
        page_count=page_count(len(sources), page_size),
        total=len(sources),
        entries=tuple(entries),
    )


def collect_lineage(graph: LineageGraph, root_name: str, max_depth: int = DEFAULT_TREE_DEPTH) -> List[Tuple[int, str]]:
    """
    Flatten a table's upstream lineage into (depth, name) pairs.

    Uses an explicit stack of (name, depth, visited-along-path) frames so the
    walk stays bounded even on cyclic input.
    """
    if root_name not in graph:
        return []

    result: List[Tuple[int, str]] = []
    stack: List[Tuple[str, int, FrozenSet[str]]] = [(root_name, 0, frozenset())]
    while stack:
        name, depth, visited = stack.pop()
        result.append((depth, name))
        if depth >= max_depth:
            continue
        path = visited | {name}
        node = graph.resolve(name)
        # reversed so sources pop in their recorded order
        for source in reversed(node.source_names):
            if source not in path:
                stack.append((source, depth + 1, path))
    return result
