"""Pytest configuration and fixtures."""

import pytest

from lineage_viewer.config import ViewerConfig, Product
from lineage_viewer.core.graph_builder import build_lineage_graph
from lineage_viewer.core.models import Relationship
from lineage_viewer.core.parser import parse_relationships

LINEAGE_CSV = """notebook_name,source_table,source_type,destination_table,destination_type
nb_orders,raw_orders.csv,CSV,stg_orders(sales.db),PARQUET
nb_orders,customers(crm.db),PARQUET,stg_orders(sales.db),PARQUET
nb_orders,lookup.csv,CSV,,
nb_report,stg_orders(sales.db),PARQUET,orders_report(reporting.db),PARQUET
nb_report,payments(finance.db),PARQUET,orders_report(reporting.db),PARQUET
"""

SCHEMA_CSV = """table_name,column_name,data_type,is_nullable,description,sample_values,business_meaning
stg_orders(sales.db),order_id,BIGINT,NO,Order key,1;2;3,Unique order
stg_orders(sales.db),amount,"DECIMAL(10,2)",YES,Order amount,9.99,Gross value
orders_report(reporting.db),order_id,BIGINT,NO,,,
"""

COLUMN_LINEAGE_CSV = """destination_table,source_table,source_column,destination_column,transformation_type,transformation_expr,notebook
stg_orders(sales.db),raw_orders.csv,id,order_id,DIRECT,id,nb_orders
stg_orders(sales.db),raw_orders.csv,amount,amount,,"CAST(amount AS DECIMAL(10,2))",nb_orders
orders_report(reporting.db),stg_orders(sales.db),amount,total_amount,,SUM(amount),nb_report
"""


@pytest.fixture
def sample_rows():
    """Raw lineage rows, including one source-only row."""
    return [
        {"notebook_name": "nb_orders", "source_table": "raw_orders.csv", "source_type": "CSV",
         "destination_table": "stg_orders(sales.db)", "destination_type": "PARQUET"},
        {"notebook_name": "nb_orders", "source_table": "customers(crm.db)", "source_type": "PARQUET",
         "destination_table": "stg_orders(sales.db)", "destination_type": "PARQUET"},
        {"notebook_name": "nb_orders", "source_table": "lookup.csv", "source_type": "CSV",
         "destination_table": "", "destination_type": ""},
        {"notebook_name": "nb_report", "source_table": "stg_orders(sales.db)", "source_type": "PARQUET",
         "destination_table": "orders_report(reporting.db)", "destination_type": "PARQUET"},
        {"notebook_name": "nb_report", "source_table": "payments(finance.db)", "source_type": "PARQUET",
         "destination_table": "orders_report(reporting.db)", "destination_type": "PARQUET"},
    ]


@pytest.fixture
def sample_graph(sample_rows):
    """Graph built from the sample rows."""
    return build_lineage_graph(parse_relationships(sample_rows))


@pytest.fixture
def cyclic_graph():
    """A -> B -> A cycle, with C feeding B."""
    return build_lineage_graph([
        Relationship("nb1", "B", "PARQUET", "A", "PARQUET"),
        Relationship("nb2", "A", "PARQUET", "B", "PARQUET"),
        Relationship("nb2", "C", "CSV", "B", "PARQUET"),
    ])


@pytest.fixture
def wide_graph():
    """One destination with twenty CSV sources."""
    return build_lineage_graph([
        Relationship("nb_wide", f"src_{i:02d}.csv", "CSV", "wide(mart.db)", "PARQUET")
        for i in range(20)
    ])


@pytest.fixture
def data_dir(tmp_path):
    """Data directory holding the files of the 'tinvay' product."""
    directory = tmp_path / "public"
    directory.mkdir()
    (directory / "lineage_tinvay.csv").write_text(LINEAGE_CSV, encoding="utf-8")
    (directory / "schema_tinvay.csv").write_text(SCHEMA_CSV, encoding="utf-8")
    (directory / "column_lineage_tinvay.csv").write_text(COLUMN_LINEAGE_CSV, encoding="utf-8")
    return directory


@pytest.fixture
def viewer_config(data_dir, tmp_path):
    """Configuration pointing at the temporary data directory with no storage API."""
    return ViewerConfig(
        data_dir=data_dir,
        api_url=None,
        downloads_dir=tmp_path / "downloads",
        products=[
            Product("tinvay", "Tinvay", "lineage_tinvay.csv", "schema_tinvay.csv", "column_lineage_tinvay.csv"),
            Product("vc_card", "VC Card", "lineage_vc_card.csv", "schema_vc_card.csv"),
        ],
        search_debounce_seconds=0,
    )


@pytest.fixture
def schema_csv():
    return SCHEMA_CSV


@pytest.fixture
def column_lineage_csv():
    return COLUMN_LINEAGE_CSV
