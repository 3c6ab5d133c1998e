"""Database-scope filtering and name search over the lineage graph."""

from typing import Dict, FrozenSet, Iterable, List, Sequence, Union

from .models import (
    ALL_DATABASES, FilterScope, SearchScope, LineageGraph, TableNode, TableType,
    DestinationRoots, MatchingSources, RootView,
)
from ..utils.logging_config import get_logger

MIN_SEARCH_LENGTH = 3
DEFAULT_MAX_AUTO_EXPAND = 5

logger = get_logger('filters')


def matches_database(node: TableNode, selected_database: str) -> bool:
    """True when the node lives in the selected database (or 'all' is selected)."""
    if selected_database == ALL_DATABASES:
        return True
    return node.database is not None and node.database == selected_database


def _matching_sources(graph: LineageGraph, root: TableNode, selected_database: str) -> List[TableNode]:
    matches = []
    for source_name in root.source_names:
        source = graph.get(source_name)
        if source is not None and matches_database(source, selected_database):
            matches.append(source)
    return matches


def filter_roots(graph: LineageGraph,
                 scope: Union[FilterScope, str],
                 selected_database: str = ALL_DATABASES) -> RootView:
    """
    Narrow the root list by database.

    Args:
        graph: Built lineage graph
        scope: destination, source or both
        selected_database: Database name or 'all'

    Returns:
        DestinationRoots, or MatchingSources when the source scope is active
        with a concrete database (the roots become the source tables themselves)
    """
    scope = FilterScope(scope)
    roots = graph.roots

    if selected_database == ALL_DATABASES:
        return DestinationRoots(roots=tuple(roots))

    if scope == FilterScope.DESTINATION:
        kept = [root for root in roots if matches_database(root, selected_database)]
        return DestinationRoots(roots=tuple(kept))

    if scope == FilterScope.SOURCE:
        found: Dict[str, TableNode] = {}
        for root in roots:
            for source in _matching_sources(graph, root, selected_database):
                found.setdefault(source.name, source)
        matched = sorted(found.values(), key=lambda node: node.name)
        logger.debug(f"Source scope for database {selected_database}: {len(matched)} matching source tables")
        return MatchingSources(roots=tuple(matched), database=selected_database)

    kept = [
        root for root in roots
        if matches_database(root, selected_database) or _matching_sources(graph, root, selected_database)
    ]
    return DestinationRoots(roots=tuple(kept))


def search_match(node: TableNode, term: str, scope: Union[SearchScope, str] = SearchScope.DESTINATION) -> bool:
    """
    Case-insensitive substring search.

    The destination and source scopes match the node name; the all scope also
    matches any of the node's direct source names.
    """
    if not term:
        return True
    needle = term.lower()
    if needle in node.name.lower():
        return True
    if SearchScope(scope) == SearchScope.ALL:
        return any(needle in source.lower() for source in node.source_names)
    return False


def _scope_includes_sources(scope: SearchScope) -> bool:
    return scope in (SearchScope.SOURCE, SearchScope.ALL)


def auto_expand_on_search(roots: Iterable[TableNode],
                          term: str,
                          scope: Union[SearchScope, str],
                          max_auto_expand: int = DEFAULT_MAX_AUTO_EXPAND,
                          min_length: int = MIN_SEARCH_LENGTH) -> FrozenSet[str]:
    """
    Pick roots to expand so that matching sources become visible.

    Returns:
        Names of up to max_auto_expand roots, in root order, whose sources
        contain the term; empty when the term is too short or the scope does
        not cover sources
    """
    if not term or len(term) < min_length or not _scope_includes_sources(SearchScope(scope)):
        return frozenset()

    needle = term.lower()
    selected = []
    for root in roots:
        if len(selected) >= max_auto_expand:
            break
        if any(needle in source.lower() for source in root.source_names):
            selected.append(root.name)
    return frozenset(selected)


def filter_databases(databases: Sequence[str], term: str) -> List[str]:
    """Filter the database dropdown by a case-insensitive substring."""
    if not term:
        return list(databases)
    needle = term.lower()
    return [database for database in databases if needle in database.lower()]


def type_counts(graph: LineageGraph, selected_database: str = ALL_DATABASES) -> Dict[str, int]:
    """Count PARQUET and CSV tables passing the database filter."""
    counts = {TableType.PARQUET.value: 0, TableType.CSV.value: 0}
    for node in graph.tables.values():
        if not matches_database(node, selected_database):
            continue
        if node.table_type in (TableType.PARQUET, TableType.CSV):
            counts[node.table_type.value] += 1
    return counts
