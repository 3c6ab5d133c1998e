"""
Viewer controller: the single owner of mutable browsing state.

The graph itself is immutable once built. Selection, expansion, filters,
search and the schema map live here and every query recomputes its view
model from the current graph.
"""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from .errors import LineageLoadError, SchemaSaveError
from .filters import (
    filter_roots, search_match, auto_expand_on_search, filter_databases,
    matches_database, type_counts,
)
from .models import (
    ALL_DATABASES, FilterScope, SearchScope, LineageGraph, SchemaColumn,
    TreeNodeView, FlowNodeView, SourcePage, RootView, DestinationRoots, MatchingSources,
    ColumnLineageEdge,
)
from .traversal import render_tree, render_flow, paginated_source_list, needs_list_view, collect_lineage
from ..config import ViewerConfig, Product
from ..formatters.json_formatter import build_snapshot, build_table_lineage
from ..loader import DataSource, LocalDataSource, HttpDataSource, ProductLoader, LoadedProduct
from ..metadata import SchemaRegistry, ColumnLineageIndex
from ..server.client import SchemaApiClient
from ..utils.logging_config import get_logger

FLOW_MODE = "flow"
LIST_MODE = "list"


class Debouncer:
    """Runs only the most recently submitted call once input has been idle.

    Each submit replaces the pending timer; a superseded timer that fires
    anyway finds its generation outdated and does nothing.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending = None

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        if self.delay <= 0:
            self.cancel()
            func(*args)
            return
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (self._generation, func, args)
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._pending is None or self._pending[0] != generation:
                return
            _, func, args = self._pending
            self._pending = None
            self._timer = None
        func(*args)

    def flush(self) -> bool:
        """Run the pending call immediately. Returns True if one was pending."""
        with self._lock:
            pending = self._pending
            self._pending = None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if pending is None:
            return False
        _, func, args = pending
        func(*args)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._pending = None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        return self._pending is not None


@dataclass(frozen=True)
class LoadTicket:
    """Identifies one load request; results for an outdated ticket are dropped."""
    number: int
    product_id: str


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a schema save: remote success, or local fallback with a warning."""
    success: bool
    filename: str
    message: str
    path: Optional[str] = None
    fallback_path: Optional[str] = None
    csv_content: Optional[str] = None


class ViewerController:
    """Drives loading, selection, filtering and schema editing for one viewer session."""

    def __init__(self,
                 config: Optional[ViewerConfig] = None,
                 data_source: Optional[DataSource] = None,
                 schema_client: Optional[SchemaApiClient] = None):
        self.config = config or ViewerConfig()
        self.logger = get_logger('controller')

        if data_source is None:
            if self.config.data_url:
                data_source = HttpDataSource(self.config.data_url)
            else:
                data_source = LocalDataSource(self.config.data_dir)
        if schema_client is None and self.config.api_url:
            schema_client = SchemaApiClient(self.config.api_url)

        self.data_source = data_source
        self.schema_client = schema_client
        self.loader = ProductLoader(data_source, dialect=self.config.sql_dialect)
        self.debouncer = Debouncer(self.config.search_debounce_seconds)

        self.product: Product = self.config.get_product()
        self.graph: Optional[LineageGraph] = None
        self.schema = SchemaRegistry()
        self.column_lineage = ColumnLineageIndex()
        self.error: Optional[str] = None
        self.loading = False

        self.selected_table: Optional[str] = None
        self.expanded: Set[str] = set()
        self.selected_database = ALL_DATABASES
        self.filter_scope = FilterScope.DESTINATION
        self.search_term = ""
        self.search_scope = SearchScope.DESTINATION
        self.flow_mode = FLOW_MODE
        self.source_page_index = 0

        self._expanded_lock = threading.Lock()
        self._load_counter = 0

    # Loading

    def load(self, product_id: Optional[str] = None) -> bool:
        """
        Load (or reload) a product's data and rebuild the graph.

        Raises:
            LineageLoadError: If the lineage file is missing or malformed
        """
        if product_id is not None:
            self.product = self.config.get_product(product_id)
        ticket = self.begin_load()
        try:
            loaded = self.loader.load(self.product)
        except LineageLoadError as e:
            self.fail_load(ticket, e)
            raise
        return self.complete_load(ticket, loaded)

    def begin_load(self) -> LoadTicket:
        self.debouncer.cancel()
        with self._expanded_lock:
            self._load_counter += 1
            self.expanded.clear()
        self.loading = True
        self.error = None
        self.selected_table = None
        return LoadTicket(number=self._load_counter, product_id=self.product.id)

    def _is_current(self, ticket: LoadTicket) -> bool:
        return ticket.number == self._load_counter and ticket.product_id == self.product.id

    def complete_load(self, ticket: LoadTicket, loaded: LoadedProduct) -> bool:
        """Apply a finished load unless a newer load or product switch superseded it."""
        if not self._is_current(ticket):
            self.logger.warning(
                f"Ignoring stale load #{ticket.number} for product {ticket.product_id} "
                f"(current: #{self._load_counter} {self.product.id})"
            )
            return False
        self.graph = loaded.graph
        self.schema = loaded.schema
        self.column_lineage = loaded.column_lineage
        self.loading = False
        return True

    def fail_load(self, ticket: LoadTicket, error: Exception) -> None:
        if not self._is_current(ticket):
            return
        self.graph = None
        self.loading = False
        self.error = str(error)
        self.logger.error(self.error)

    def select_product(self, product_id: str) -> bool:
        self.product = self.config.get_product(product_id)
        self.selected_database = ALL_DATABASES
        return self.load()

    def reload_schema(self) -> SchemaRegistry:
        self.schema = self.loader.load_schema(self.product)
        return self.schema

    # Interaction

    def select_table(self, table_name: str) -> None:
        """Select a table; a table with sources also toggles its expansion."""
        if table_name != self.selected_table:
            self.flow_mode = FLOW_MODE
            self.source_page_index = 0
        self.selected_table = table_name
        node = self.graph.get(table_name) if self.graph else None
        if node is not None and node.has_sources:
            self.toggle_node(table_name)

    def toggle_node(self, table_name: str) -> bool:
        """Flip expansion of a node. Returns the new expanded state."""
        with self._expanded_lock:
            if table_name in self.expanded:
                self.expanded.discard(table_name)
                return False
            self.expanded.add(table_name)
            return True

    def expand(self, table_names: Iterable[str]) -> None:
        with self._expanded_lock:
            self.expanded.update(table_names)

    def select_database(self, database: str) -> None:
        if self.graph is not None and database not in self.graph.databases:
            raise ValueError(f"Unknown database '{database}'")
        self.selected_database = database

    def set_filter_scope(self, scope: Union[FilterScope, str]) -> None:
        self.filter_scope = FilterScope(scope)

    def set_search(self, term: str, scope: Union[SearchScope, str, None] = None) -> None:
        """Update the search term now and schedule the debounced auto-expand."""
        self.search_term = term or ""
        if scope is not None:
            self.search_scope = SearchScope(scope)
        self.debouncer.submit(self._apply_auto_expand, self.search_term, self._load_counter)

    def flush_search(self) -> bool:
        return self.debouncer.flush()

    def _apply_auto_expand(self, term: str, load_number: int) -> None:
        if term != self.search_term or load_number != self._load_counter:
            return
        view = self.root_view()
        names = auto_expand_on_search(
            view.roots,
            term,
            self.effective_search_scope(view),
            max_auto_expand=self.config.max_auto_expand,
            min_length=self.config.min_search_length,
        )
        if not names:
            return
        with self._expanded_lock:
            # a load that started meanwhile has already cleared the expansion
            if load_number != self._load_counter:
                return
            self.logger.debug(f"Auto-expanding {len(names)} roots for search '{term}'")
            self.expanded.update(names)

    def set_flow_mode(self, mode: str) -> None:
        if mode not in (FLOW_MODE, LIST_MODE):
            raise ValueError(f"Unknown flow mode '{mode}'")
        self.flow_mode = mode

    def next_page(self) -> int:
        page = self.source_page()
        if page is not None and page.has_next:
            self.source_page_index += 1
        return self.source_page_index

    def previous_page(self) -> int:
        self.source_page_index = max(0, self.source_page_index - 1)
        return self.source_page_index

    # Queries

    def root_view(self) -> RootView:
        if self.graph is None:
            return DestinationRoots(roots=())
        return filter_roots(self.graph, self.filter_scope, self.selected_database)

    def effective_search_scope(self, view: Optional[RootView] = None) -> SearchScope:
        view = view if view is not None else self.root_view()
        if isinstance(view, MatchingSources):
            return SearchScope.SOURCE
        return self.search_scope

    def tree(self) -> List[TreeNodeView]:
        """Render the tree browser for all visible roots."""
        if self.graph is None:
            return []
        view = self.root_view()
        scope = self.effective_search_scope(view)
        max_depth = self.config.max_tree_depth if view.recursive else 0

        filter_predicate = None
        if self.filter_scope == FilterScope.DESTINATION and self.selected_database != ALL_DATABASES:
            database = self.selected_database
            filter_predicate = lambda node: matches_database(node, database)
        term = self.search_term
        search_predicate = (lambda node: search_match(node, term, scope)) if term else None

        with self._expanded_lock:
            expanded = frozenset(self.expanded)

        rendered = (
            render_tree(
                self.graph,
                root.name,
                max_depth=max_depth,
                expanded=expanded,
                filter_predicate=filter_predicate,
                search_predicate=search_predicate,
            )
            for root in view.roots
        )
        return [node for node in rendered if node is not None]

    def flow(self) -> Optional[FlowNodeView]:
        if self.graph is None or not self.selected_table:
            return None
        return render_flow(
            self.graph,
            self.selected_table,
            max_depth=self.config.max_flow_depth,
            max_breadth=self.config.max_flow_sources,
        )

    def offers_list_view(self) -> bool:
        if self.graph is None or not self.selected_table:
            return False
        return needs_list_view(self.graph, self.selected_table, self.config.max_flow_sources)

    def source_page(self) -> Optional[SourcePage]:
        if self.graph is None or not self.selected_table:
            return None
        return paginated_source_list(
            self.graph,
            self.selected_table,
            page_size=self.config.sources_per_page,
            page_index=self.source_page_index,
        )

    def database_options(self, term: str = "") -> List[str]:
        databases = self.graph.databases if self.graph else [ALL_DATABASES]
        return filter_databases(databases, term)

    def stats(self) -> Dict[str, int]:
        if self.graph is None:
            return {}
        counts = type_counts(self.graph, self.selected_database)
        return {
            "tables": len(self.graph.tables),
            "relationships": len(self.graph.relationships),
            "destinations": len(self.graph.roots),
            "parquet": counts["PARQUET"],
            "csv": counts["CSV"],
        }

    def export_snapshot(self) -> Dict[str, Any]:
        if self.graph is None:
            raise LineageLoadError(self.product.lineage_file, "no lineage data loaded", self.product.name)
        return build_snapshot(self.product.name, self.graph, self.schema)

    def export_table_lineage(self, table_name: str) -> Dict[str, Any]:
        """Upstream lineage of one table, flattened to the tree depth limit."""
        if self.graph is None:
            raise LineageLoadError(self.product.lineage_file, "no lineage data loaded", self.product.name)
        walk = collect_lineage(self.graph, table_name, self.config.max_tree_depth)
        return build_table_lineage(self.product.name, table_name, self.graph, walk)

    def column_lineage_for(self, table_name: str, group_by: str = "column") -> Dict[str, List[ColumnLineageEdge]]:
        if group_by == "source":
            return self.column_lineage.group_by_source_table(table_name)
        return self.column_lineage.group_by_destination_column(table_name)

    # Schema editing

    def save_schema(self, table_name: str, columns: Iterable[SchemaColumn]) -> SaveOutcome:
        """
        Store an edited table schema and persist the full schema file.

        The in-memory registry is updated first. When the storage API cannot
        take the file, the regenerated CSV is written to the downloads
        directory instead and the outcome carries recovery instructions.
        """
        self.schema.set_table_schema(table_name, columns)
        csv_content = self.schema.to_csv()
        filename = self.product.schema_file

        if self.schema_client is None:
            return self._save_locally(csv_content, filename, "No storage API configured")

        try:
            result = self.schema_client.save_schema(csv_content, filename)
        except SchemaSaveError as e:
            self.logger.warning(f"API not available, falling back to download: {e}")
            return self._save_locally(csv_content, filename, str(e))

        return SaveOutcome(
            success=True,
            filename=filename,
            path=result.get("path"),
            message=f"Schema saved to {filename}",
        )

    def _save_locally(self, csv_content: str, filename: str, reason: str) -> SaveOutcome:
        downloads_dir = Path(self.config.downloads_dir)
        fallback_path = downloads_dir / filename
        try:
            downloads_dir.mkdir(parents=True, exist_ok=True)
            fallback_path.write_text(csv_content, encoding="utf-8")
        except OSError as e:
            message = (
                f"Storage API unavailable ({reason}) and {fallback_path} could not be written ({e}).\n"
                f"The edited schema is kept in memory; save the CSV content below as "
                f"{Path(self.config.data_dir) / filename} and reload the data."
            )
            self.logger.error(message)
            return SaveOutcome(
                success=False,
                filename=filename,
                message=message,
                csv_content=csv_content,
            )
        message = (
            f"Storage API unavailable ({reason}).\n"
            f"File {filename} was written to {fallback_path}.\n"
            f"1. Copy it into: {Path(self.config.data_dir) / filename}\n"
            f"2. Reload the data"
        )
        self.logger.warning(message)
        return SaveOutcome(
            success=False,
            filename=filename,
            message=message,
            fallback_path=str(fallback_path),
        )

    def close(self) -> None:
        self.debouncer.cancel()
