"""Runtime configuration for the lineage viewer."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .utils.logging_config import get_logger

DEFAULT_DATA_DIR = "public"
DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_DOWNLOADS_DIR = "downloads"


@dataclass(frozen=True)
class Product:
    """A data product with its own lineage, schema and column lineage files."""
    id: str
    name: str
    lineage_file: str
    schema_file: str
    column_lineage_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        product_id = data["id"]
        return cls(
            id=product_id,
            name=data.get("name", product_id),
            lineage_file=data.get("lineage_file", f"lineage_{product_id}.csv"),
            schema_file=data.get("schema_file", f"schema_{product_id}.csv"),
            column_lineage_file=data.get("column_lineage_file"),
        )


DEFAULT_PRODUCTS = [
    Product("tinvay", "Tinvay", "lineage_tinvay.csv", "schema_tinvay.csv", "column_lineage_tinvay.csv"),
    Product("vc_card", "VC Card", "lineage_vc_card.csv", "schema_vc_card.csv", "column_lineage_vc_card.csv"),
    Product("fast_money", "Fast Money", "lineage_fast_money.csv", "schema_fast_money.csv", "column_lineage_fast_money.csv"),
]


@dataclass
class ViewerConfig:
    """Viewer settings: where data lives, which products exist, and view limits."""
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    data_url: Optional[str] = None
    api_url: Optional[str] = DEFAULT_API_URL
    downloads_dir: Path = field(default_factory=lambda: Path(DEFAULT_DOWNLOADS_DIR))
    products: List[Product] = field(default_factory=lambda: list(DEFAULT_PRODUCTS))
    max_tree_depth: int = 2
    max_flow_depth: int = 1
    max_flow_sources: int = 8
    sources_per_page: int = 10
    max_auto_expand: int = 5
    min_search_length: int = 3
    search_debounce_seconds: float = 0.5
    sql_dialect: str = "spark"

    def get_product(self, product_id: Optional[str] = None) -> Product:
        """Look up a product by id; the first product is the default."""
        if not self.products:
            raise ValueError("No products configured")
        if product_id is None:
            return self.products[0]
        for product in self.products:
            if product.id == product_id:
                return product
        known = ", ".join(product.id for product in self.products)
        raise ValueError(f"Unknown product '{product_id}'. Known products: {known}")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ViewerConfig":
        """
        Build a configuration from LINEAGE_VIEWER_* environment variables.

        Keyword overrides that are not None take precedence over the environment.
        """
        logger = get_logger('config')
        config = cls()

        data_dir = os.getenv('LINEAGE_VIEWER_DATA_DIR')
        if data_dir:
            config.data_dir = Path(data_dir)
        config.data_url = os.getenv('LINEAGE_VIEWER_DATA_URL') or config.data_url
        if 'LINEAGE_VIEWER_API_URL' in os.environ:
            config.api_url = os.environ['LINEAGE_VIEWER_API_URL'] or None
        downloads_dir = os.getenv('LINEAGE_VIEWER_DOWNLOADS_DIR')
        if downloads_dir:
            config.downloads_dir = Path(downloads_dir)

        for env_name, attribute in (
            ('LINEAGE_VIEWER_MAX_TREE_DEPTH', 'max_tree_depth'),
            ('LINEAGE_VIEWER_MAX_FLOW_DEPTH', 'max_flow_depth'),
            ('LINEAGE_VIEWER_MAX_FLOW_SOURCES', 'max_flow_sources'),
            ('LINEAGE_VIEWER_SOURCES_PER_PAGE', 'sources_per_page'),
        ):
            value = os.getenv(env_name)
            if value:
                setattr(config, attribute, int(value))

        products_file = os.getenv('LINEAGE_VIEWER_PRODUCTS_FILE')
        if products_file:
            config.products = load_products(products_file)
            logger.info(f"Loaded {len(config.products)} products from {products_file}")

        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(config, key):
                raise TypeError(f"Unknown configuration option: {key}")
            if key in ('data_dir', 'downloads_dir'):
                value = Path(value)
            setattr(config, key, value)

        return config


def load_products(path: str) -> List[Product]:
    """Load a product list from a JSON file containing a list of objects."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Products file {path} must contain a JSON list")
    return [Product.from_dict(item) for item in data]
