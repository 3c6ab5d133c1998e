"""Lineage flow visualization package."""

from .visualizer import FlowDiagramVisualizer, create_flow_visualization, DEFAULT_VISUALIZATION_CONFIG

__all__ = [
    'FlowDiagramVisualizer',
    'create_flow_visualization',
    'DEFAULT_VISUALIZATION_CONFIG'
]
