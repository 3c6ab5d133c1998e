"""Lineage Viewer - Browse notebook-produced table lineage from CSV snapshots."""

from .core.controller import ViewerController
from .core.graph_builder import build_lineage_graph
from .core.models import LineageGraph, TableNode, Relationship
from .config import ViewerConfig, Product

__version__ = "1.0.0"
__all__ = ["ViewerController", "ViewerConfig", "Product", "build_lineage_graph", "LineageGraph", "TableNode", "Relationship"]
