"""Rich console output formatter."""

from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..core.models import (
    TableType, TreeNodeView, FlowNodeView, SourcePage, SchemaColumn,
    ColumnLineageEdge, RootView, MatchingSources,
)

TYPE_STYLES = {
    TableType.PARQUET: "magenta",
    TableType.CSV: "green",
    TableType.TABLE: "blue",
}


def _type_style(raw_type: Optional[str]) -> str:
    return TYPE_STYLES[TableType.classify(raw_type)]


def _label(name: str, raw_type: Optional[str], resolved: bool = True) -> str:
    if not resolved:
        return f"[dim]{escape(name)} (not in lineage)[/dim]"
    style = _type_style(raw_type)
    type_text = f" [dim]{escape(raw_type)}[/dim]" if raw_type else ""
    return f"[{style}]{escape(name)}[/{style}]{type_text}"


class ConsoleFormatter:
    """Formats lineage views for rich console output."""

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize console formatter.

        Args:
            console: Rich console instance (creates new one if None)
        """
        self.console = console or Console()

    def print_header(self, product_name: str, stats: Dict[str, int]) -> None:
        """Print the product header with table statistics."""
        title = Text("Data Lineage Viewer", style="bold blue")
        body = (
            f"[bold]Product:[/bold] {escape(product_name)}\n"
            f"[bold]Tables:[/bold] {stats.get('tables', 0)}  "
            f"[bold]Relationships:[/bold] {stats.get('relationships', 0)}  "
            f"[bold]Destinations:[/bold] {stats.get('destinations', 0)}\n"
            f"[magenta]PARQUET:[/magenta] {stats.get('parquet', 0)}  "
            f"[green]CSV:[/green] {stats.get('csv', 0)}"
        )
        self.console.print(Panel.fit(body, title=title, border_style="blue"))

    def print_error(self, message: str) -> None:
        self.console.print(Panel(escape(message), title="[red]Error[/red]", border_style="red"))

    def print_warning(self, message: str) -> None:
        self.console.print(Panel(escape(message), title="[yellow]Warning[/yellow]", border_style="yellow"))

    def print_roots(self, view: RootView) -> None:
        """Print the root list as a table."""
        if isinstance(view, MatchingSources):
            title = f"Source tables in {view.database}"
        else:
            title = "Destination tables"
        table = Table(title=title, show_header=True)
        table.add_column("Table", style="bold")
        table.add_column("Type")
        table.add_column("Database", style="cyan")
        table.add_column("Sources", justify="right")
        table.add_column("Notebook", style="dim")

        for node in view.roots:
            style = _type_style(node.type)
            table.add_row(
                f"[{style}]{escape(node.name)}[/{style}]",
                escape(node.type or ""),
                escape(node.database or ""),
                str(node.source_count),
                escape(node.notebooks[0]) if node.notebooks else "",
            )
        self.console.print(table)
        if not view.roots:
            self.console.print("  [dim]No tables match the current filter[/dim]")

    def print_tree(self, nodes: List[TreeNodeView]) -> None:
        """Print the tree browser."""
        if not nodes:
            self.console.print("  [dim]No tables match the current filter[/dim]")
            return
        tree = Tree("[bold]Lineage[/bold]")
        for node in nodes:
            self._add_tree_node(tree, node)
        self.console.print(tree)

    def _add_tree_node(self, parent: Tree, node: TreeNodeView) -> None:
        marker = ""
        if node.expandable:
            marker = "[bold]- [/bold]" if node.expanded else "[bold]+ [/bold]"
        label = marker + _label(node.name, node.type, node.resolved)
        if node.source_count:
            label += f" [dim]({node.source_count} sources)[/dim]"
        branch = parent.add(label)
        for child in node.children:
            self._add_tree_node(branch, child)

    def print_flow(self, flow: FlowNodeView) -> None:
        """Print the flow view of a selected table: sources feed into the root."""
        tree = Tree(f"[bold]{_label(flow.name, flow.type, flow.resolved)}[/bold]")
        self._add_flow_children(tree, flow)
        self.console.print(tree)

    def _add_flow_children(self, parent: Tree, node: FlowNodeView) -> None:
        for child in node.children:
            branch = parent.add("← " + _label(child.name, child.type, child.resolved))
            self._add_flow_children(branch, child)
        if node.placeholder is not None:
            parent.add(f"[dim italic]{node.placeholder.label}[/dim italic]")

    def print_source_page(self, page: SourcePage) -> None:
        """Print one page of a table's direct sources."""
        table = Table(title=f"Sources of {escape(page.table_name)}", show_header=True)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Source")
        table.add_column("Type")
        table.add_column("Database", style="cyan")
        for entry in page.entries:
            table.add_row(
                str(entry.position),
                _label(entry.name, entry.type, entry.resolved),
                escape(entry.type or ""),
                escape(entry.database or ""),
            )
        self.console.print(table)
        if page.page_count:
            self.console.print(f"  Page {page.page_index + 1} of {page.page_count} ({page.total} sources)")
        else:
            self.console.print("  [dim]No sources[/dim]")

    def print_databases(self, databases: List[str], selected: Optional[str] = None) -> None:
        for database in databases:
            if database == selected:
                self.console.print(f"[bold green]* {escape(database)}[/bold green]")
            else:
                self.console.print(f"  {escape(database)}")

    def print_schema(self, table_name: str, columns: List[SchemaColumn]) -> None:
        """Print a table schema."""
        if not columns:
            self.console.print(f"  [dim]No schema defined for {escape(table_name)}[/dim]")
            return
        table = Table(title=f"[green]{escape(table_name)}[/green]", show_header=True)
        table.add_column("Column", style="yellow")
        table.add_column("Type", style="blue")
        table.add_column("Nullable", style="green")
        table.add_column("Description", style="white")
        table.add_column("Business Meaning", style="white")
        table.add_column("Sample Values", style="dim")
        for column in columns:
            table.add_row(
                escape(column.column_name),
                escape(column.data_type),
                escape(column.is_nullable),
                escape(column.description),
                escape(column.business_meaning),
                escape(column.sample_values),
            )
        self.console.print(table)

    def print_column_lineage(self, table_name: str, groups: Dict[str, List[ColumnLineageEdge]]) -> None:
        """Print grouped column lineage for a table."""
        if not groups:
            self.console.print(f"  [dim]No column lineage for {escape(table_name)}[/dim]")
            return
        tree = Tree(f"[green]{escape(table_name)}[/green]")
        for key, edges in groups.items():
            group_node = tree.add(f"[yellow]{escape(key)}[/yellow]")
            for edge in edges:
                source = ".".join(part for part in (edge.source_table, edge.source_column) if part)
                text = f"{escape(edge.destination_column)} ← [blue]{escape(source or '?')}[/blue]"
                text += f" [dim]{edge.transformation_type.value}[/dim]"
                if edge.transformation_expr:
                    text += f" [dim]{escape(edge.transformation_expr)}[/dim]"
                group_node.add(text)
        self.console.print(tree)
