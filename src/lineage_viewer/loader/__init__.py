"""CSV loading and data sources."""

from .csv_loader import read_csv_rows, CsvParseError
from .data_source import DataSource, LocalDataSource, HttpDataSource, DataSourceError
from .product_loader import ProductLoader, LoadedProduct

__all__ = [
    "read_csv_rows",
    "CsvParseError",
    "DataSource",
    "LocalDataSource",
    "HttpDataSource",
    "DataSourceError",
    "ProductLoader",
    "LoadedProduct",
]
