"""Command-line interface for the lineage viewer."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape

from .config import ViewerConfig
from .core.controller import ViewerController, LIST_MODE
from .core.errors import LineageLoadError
from .core.models import ALL_DATABASES, FilterScope, SearchScope, SchemaColumn
from .core.parser import clean_field
from .formatters.json_formatter import JSONFormatter
from .formatters.console_formatter import ConsoleFormatter
from .loader.csv_loader import read_csv_rows, CsvParseError
from .utils.validation import validate_file_path
from .utils.logging_config import get_logger


def _build_controller(ctx: click.Context) -> ViewerController:
    """Create a controller from the group options and load the selected product."""
    logger = get_logger('cli')
    console = Console(stderr=True)
    options = ctx.obj
    try:
        config = ViewerConfig.from_env(
            data_dir=options.get('data_dir'),
            data_url=options.get('data_url'),
            api_url=options.get('api_url'),
            search_debounce_seconds=0,
        )
        controller = ViewerController(config)
        controller.load(options.get('product'))
    except (LineageLoadError, ValueError) as e:
        logger.error(f"Failed to load lineage: {e}")
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    return controller


def _apply_filters(controller: ViewerController,
                   database: str,
                   scope: str,
                   search: Optional[str] = None,
                   search_scope: Optional[str] = None) -> None:
    try:
        controller.select_database(database)
    except ValueError as e:
        Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    controller.set_filter_scope(scope)
    if search:
        controller.set_search(search, search_scope)


def _require_table(controller: ViewerController, table: str) -> None:
    if controller.graph is None or table not in controller.graph:
        Console(stderr=True).print(f"[red]Error:[/red] Table '{escape(table)}' not found in {escape(controller.product.name)}")
        sys.exit(1)


def _write_output(console: Console, output: str, output_file: Optional[str]) -> None:
    logger = get_logger('cli.output')
    if not output_file:
        click.echo(output)
        return
    try:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(output)
        logger.info(f"Results written to file: {output_file}")
        console.print(f"[green]Results written to:[/green] {escape(output_file)}")
    except OSError as e:
        logger.error(f"Failed to write output file {output_file}: {str(e)}")
        console.print(f"[red]Error:[/red] Failed to write output file: {escape(str(e))}")
        sys.exit(1)


database_option = click.option(
    '--database', '-D',
    default=ALL_DATABASES,
    help='Database to filter by (default: all)'
)
scope_option = click.option(
    '--scope',
    type=click.Choice([scope.value for scope in FilterScope]),
    default=FilterScope.DESTINATION.value,
    help='Which side of a relationship the database filter applies to'
)
format_option = click.option(
    '--output-format', '-o',
    type=click.Choice(['console', 'json']),
    default='console',
    help='Output format (default: console)'
)


@click.group()
@click.version_option(version="1.0.0", prog_name="lineage-viewer")
@click.option('--product', '-p', help='Product id (default: first configured product)')
@click.option('--data-dir', type=click.Path(file_okay=False), help='Directory holding the CSV files')
@click.option('--data-url', help='Base URL serving the CSV files instead of a local directory')
@click.option('--api-url', help='File storage API used when saving schemas')
@click.pass_context
def cli(ctx: click.Context, product: Optional[str], data_dir: Optional[str], data_url: Optional[str], api_url: Optional[str]):
    """Lineage Viewer - Browse table lineage produced by notebooks."""
    logger = get_logger('cli')
    logger.info("Lineage Viewer CLI started")
    ctx.ensure_object(dict)
    ctx.obj.update(product=product, data_dir=data_dir, data_url=data_url, api_url=api_url)


@cli.command()
@database_option
@scope_option
@format_option
@click.pass_context
def roots(ctx: click.Context, database: str, scope: str, output_format: str):
    """List destination tables (or matching sources) for the current filter."""
    controller = _build_controller(ctx)
    _apply_filters(controller, database, scope)
    view = controller.root_view()

    if output_format == 'json':
        click.echo(JSONFormatter().format({
            "kind": view.kind,
            "recursive": view.recursive,
            "roots": [node.name for node in view.roots],
        }))
        return
    formatter = ConsoleFormatter(Console())
    formatter.print_header(controller.product.name, controller.stats())
    formatter.print_roots(view)


@cli.command()
@database_option
@scope_option
@click.option('--search', '-s', help='Filter root tables by name (case-insensitive)')
@click.option(
    '--search-scope',
    type=click.Choice([scope.value for scope in SearchScope]),
    default=SearchScope.DESTINATION.value,
    help='Names the search term is matched against'
)
@click.option('--expand', '-e', 'expand', multiple=True, help='Table to expand (repeatable)')
@click.option('--expand-all', is_flag=True, help='Expand every table up to the depth limit')
@format_option
@click.pass_context
def tree(ctx: click.Context,
         database: str,
         scope: str,
         search: Optional[str],
         search_scope: str,
         expand: Tuple[str, ...],
         expand_all: bool,
         output_format: str):
    """Show the hierarchical lineage tree."""
    logger = get_logger('cli.tree')
    controller = _build_controller(ctx)
    _apply_filters(controller, database, scope, search, search_scope)
    controller.expand(expand)
    if expand_all:
        controller.expand(controller.graph.tables)
    nodes = controller.tree()
    logger.debug(f"Rendered {len(nodes)} root nodes")

    if output_format == 'json':
        click.echo(JSONFormatter().format_tree(nodes))
        return
    ConsoleFormatter(Console()).print_tree(nodes)


@cli.command()
@click.argument('table')
@format_option
@click.pass_context
def flow(ctx: click.Context, table: str, output_format: str):
    """Show the flow view of TABLE and its direct sources."""
    controller = _build_controller(ctx)
    _require_table(controller, table)
    controller.select_table(table)
    view = controller.flow()

    if output_format == 'json':
        click.echo(JSONFormatter().format_flow(view))
        return
    console = Console()
    ConsoleFormatter(console).print_flow(view)
    if controller.offers_list_view():
        console.print(
            f"[yellow]{view.source_count} sources; showing the first {controller.config.max_flow_sources}. "
            f"Use 'lineage-viewer sources {escape(table)}' for the full list.[/yellow]"
        )


@cli.command()
@click.argument('table')
@click.option('--page', '-n', default=1, type=int, help='Page number, starting at 1')
@format_option
@click.pass_context
def sources(ctx: click.Context, table: str, page: int, output_format: str):
    """List the direct sources of TABLE, paginated."""
    controller = _build_controller(ctx)
    _require_table(controller, table)
    controller.select_table(table)
    controller.set_flow_mode(LIST_MODE)
    controller.source_page_index = page - 1
    source_page = controller.source_page()

    if output_format == 'json':
        click.echo(JSONFormatter().format_page(source_page))
        return
    ConsoleFormatter(Console()).print_source_page(source_page)


@cli.command()
@click.option('--search', '-s', default='', help='Filter databases by name')
@click.pass_context
def databases(ctx: click.Context, search: str):
    """List the databases found in the lineage."""
    controller = _build_controller(ctx)
    ConsoleFormatter(Console()).print_databases(controller.database_options(search), controller.selected_database)


@cli.command()
@click.argument('table')
@click.option('--ddl', is_flag=True, help='Print a CREATE TABLE statement')
@click.option('--csv', 'as_csv', is_flag=True, help='Print the schema as CSV')
@click.option('--output-file', '-F', type=click.Path(), help='Write DDL/CSV output to a file')
@click.pass_context
def schema(ctx: click.Context, table: str, ddl: bool, as_csv: bool, output_file: Optional[str]):
    """Show the schema of TABLE."""
    console = Console()
    controller = _build_controller(ctx)

    if ddl:
        try:
            output = controller.schema.generate_ddl(table, dialect=controller.config.sql_dialect)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        _write_output(console, output, output_file)
        return
    if as_csv:
        _write_output(console, controller.schema.table_to_csv(table), output_file)
        return
    ConsoleFormatter(console).print_schema(table, controller.schema.get_table_schema(table))


@cli.command(name='edit-schema')
@click.argument('table')
@click.option(
    '--columns-file', '-f',
    type=click.Path(exists=True, dir_okay=False, readable=True),
    required=True,
    help='CSV with column_name,data_type,is_nullable,description,sample_values,business_meaning'
)
@click.pass_context
def edit_schema(ctx: click.Context, table: str, columns_file: str):
    """Replace the schema of TABLE and save the product schema file."""
    logger = get_logger('cli.edit_schema')
    console = Console()
    file_error = validate_file_path(columns_file)
    if file_error:
        console.print(f"[red]Error:[/red] {escape(file_error)}")
        sys.exit(1)

    try:
        rows = read_csv_rows(Path(columns_file).read_text(encoding='utf-8'))
    except CsvParseError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    columns = [
        SchemaColumn(
            column_name=clean_field(row.get('column_name')) or "",
            data_type=clean_field(row.get('data_type')) or "",
            is_nullable=clean_field(row.get('is_nullable')) or "",
            description=clean_field(row.get('description')) or "",
            sample_values=clean_field(row.get('sample_values')) or "",
            business_meaning=clean_field(row.get('business_meaning')) or "",
        )
        for row in rows
    ]

    controller = _build_controller(ctx)
    outcome = controller.save_schema(table, columns)
    formatter = ConsoleFormatter(console)
    if outcome.success:
        logger.info(outcome.message)
        console.print(f"[green]{escape(outcome.message)}[/green]")
    else:
        formatter.print_warning(outcome.message)
        if outcome.csv_content is not None:
            click.echo(outcome.csv_content)


@cli.command(name='column-lineage')
@click.argument('table')
@click.option(
    '--group-by', '-g',
    type=click.Choice(['column', 'source']),
    default='column',
    help='Group edges by destination column or by source table'
)
@click.pass_context
def column_lineage(ctx: click.Context, table: str, group_by: str):
    """Show column-level lineage of TABLE."""
    controller = _build_controller(ctx)
    ConsoleFormatter(Console()).print_column_lineage(table, controller.column_lineage_for(table, group_by))


@cli.command()
@click.option('--table', '-t', help='Export only the upstream lineage of this table')
@click.option('--output-file', '-F', type=click.Path(), help='Output file path (default: stdout)')
@click.pass_context
def export(ctx: click.Context, table: Optional[str], output_file: Optional[str]):
    """Export the loaded lineage and schemas as JSON."""
    controller = _build_controller(ctx)
    if table:
        _require_table(controller, table)
        output = JSONFormatter().format(controller.export_table_lineage(table))
    else:
        output = JSONFormatter().format_snapshot(controller.export_snapshot())
    _write_output(Console(), output, output_file)


@cli.command()
@click.argument('table')
@click.option('--output-path', '-O', default='lineage_flow', help='Output path without extension')
@click.option(
    '--output-format', '-o',
    type=click.Choice(['png', 'svg', 'pdf', 'jpg', 'jpeg', 'dot', 'ps']),
    default='png',
    help='Diagram format (default: png)'
)
@click.option(
    '--layout', '-l',
    type=click.Choice(['horizontal', 'vertical']),
    default='horizontal',
    help='Layout direction (default: horizontal)'
)
@click.pass_context
def diagram(ctx: click.Context, table: str, output_path: str, output_format: str, layout: str):
    """Render the flow view of TABLE with Graphviz."""
    from .visualization.visualizer import create_flow_visualization

    logger = get_logger('cli.diagram')
    console = Console()
    controller = _build_controller(ctx)
    _require_table(controller, table)
    controller.select_table(table)
    try:
        output = create_flow_visualization(controller.flow(), output_path=output_path, output_format=output_format, layout=layout)
    except Exception as e:
        logger.error(f"Diagram rendering failed: {str(e)}", exc_info=True)
        console.print(f"[red]Error:[/red] Failed to render diagram: {escape(str(e))}")
        sys.exit(1)
    console.print(f"[green]Diagram written to:[/green] {escape(output)}")


@cli.command()
@click.option('--host', default='127.0.0.1', help='Bind address (default: 127.0.0.1)')
@click.option('--port', default=3000, type=int, help='Port (default: 3000)')
@click.option('--data-dir', 'serve_dir', type=click.Path(file_okay=False), help='Directory to serve (default: configured data dir)')
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, serve_dir: Optional[str]):
    """Run the file storage API."""
    import uvicorn

    from .server.app import create_app

    logger = get_logger('cli.serve')
    config = ViewerConfig.from_env(data_dir=serve_dir or ctx.obj.get('data_dir'))
    logger.info(f"Serving {config.data_dir} on {host}:{port}")
    Console(stderr=True).print(f"[blue]Storage API serving[/blue] {config.data_dir} [blue]on[/blue] http://{host}:{port}")
    uvicorn.run(create_app(config.data_dir), host=host, port=port)


def main():
    """Main entry point."""
    logger = get_logger('main')
    logger.info("Lineage Viewer starting")
    try:
        cli(obj={})
    except Exception as e:
        logger.error(f"Unexpected error in main: {str(e)}", exc_info=True)
        raise
    finally:
        logger.info("Lineage Viewer session ended")


if __name__ == '__main__':
    main()
