"""Loads a product's lineage, schema and column lineage into memory."""

from dataclasses import dataclass
from typing import List, Dict, Optional

from .csv_loader import read_csv_rows, CsvParseError
from .data_source import DataSource, DataSourceError
from ..config import Product
from ..core.errors import LineageLoadError
from ..core.graph_builder import LineageGraphBuilder
from ..core.models import LineageGraph
from ..core.parser import RelationshipParser
from ..metadata import SchemaRegistry, ColumnLineageIndex
from ..utils.logging_config import get_logger


@dataclass
class LoadedProduct:
    """Everything rebuilt for a product on each load."""
    product: Product
    graph: LineageGraph
    schema: SchemaRegistry
    column_lineage: ColumnLineageIndex


class ProductLoader:
    """Fetches and parses the CSV files of one product.

    The lineage file is required: a missing or malformed file raises
    LineageLoadError. Schema and column lineage files are optional and
    degrade to empty datasets.
    """

    def __init__(self, data_source: DataSource, dialect: str = "spark"):
        self.data_source = data_source
        self.dialect = dialect
        self.parser = RelationshipParser()
        self.builder = LineageGraphBuilder()
        self.logger = get_logger('loader.product')

    def load(self, product: Product) -> LoadedProduct:
        graph = self.load_graph(product)
        return LoadedProduct(
            product=product,
            graph=graph,
            schema=self.load_schema(product),
            column_lineage=self.load_column_lineage(product),
        )

    def load_graph(self, product: Product) -> LineageGraph:
        filename = product.lineage_file
        try:
            text = self.data_source.fetch_text(filename)
        except DataSourceError as e:
            raise LineageLoadError(filename, str(e), product.name) from e
        if text is None:
            raise LineageLoadError(
                filename,
                f"file not found in {self.data_source.describe()}",
                product.name,
            )

        try:
            rows = read_csv_rows(text)
        except CsvParseError as e:
            raise LineageLoadError(filename, f"error parsing CSV: {e}", product.name) from e

        relationships = self.parser.parse(rows)
        return self.builder.build(relationships)

    def load_schema(self, product: Product) -> SchemaRegistry:
        rows = self._load_optional(product.schema_file, "Schema")
        registry = SchemaRegistry.from_rows(rows)
        self.logger.info(f"Loaded schema for {len(registry)} tables from {product.schema_file}")
        return registry

    def load_column_lineage(self, product: Product) -> ColumnLineageIndex:
        if not product.column_lineage_file:
            return ColumnLineageIndex()
        rows = self._load_optional(product.column_lineage_file, "Column lineage")
        return ColumnLineageIndex.from_rows(rows, dialect=self.dialect)

    def _load_optional(self, filename: str, label: str) -> List[Dict[str, str]]:
        try:
            text = self.data_source.fetch_text(filename)
        except DataSourceError as e:
            self.logger.warning(f"{label} file {filename} not available: {e}")
            return []
        if text is None:
            self.logger.warning(f"{label} file {filename} not found")
            return []
        try:
            return read_csv_rows(text)
        except CsvParseError as e:
            self.logger.warning(f"{label} file {filename} error: {e}")
            return []
