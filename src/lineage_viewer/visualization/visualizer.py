"""Flow diagram visualizer using Graphviz."""

import copy
from typing import Dict, List, Optional

from graphviz import Digraph

from ..core.models import FlowNodeView, TableType
from ..utils.logging_config import get_logger

# Constants for layout directions; sources are drawn before the selected table
LAYOUT_DIRECTIONS = {
    'horizontal': 'LR',
    'vertical': 'TB',
}

SUPPORTED_FORMATS = ['png', 'svg', 'pdf', 'jpg', 'jpeg', 'dot', 'ps']


class FlowDiagramVisualizer:
    """
    Creates a flow diagram of a selected table and its upstream sources.
    Node colors follow the table storage type.
    """

    def __init__(self):
        """Initialize the visualizer."""
        self.logger = get_logger('visualization')
        self.default_config = {
            'node_style': {
                TableType.PARQUET.value: {
                    'shape': 'box',
                    'style': 'filled,rounded',
                    'fillcolor': '#F3E5F5',
                    'color': '#7B1FA2',
                    'fontname': 'Arial',
                    'fontsize': '11',
                    'fontcolor': '#4A148C'
                },
                TableType.CSV.value: {
                    'shape': 'box',
                    'style': 'filled,rounded',
                    'fillcolor': '#E8F5E9',
                    'color': '#2E7D32',
                    'fontname': 'Arial',
                    'fontsize': '11',
                    'fontcolor': '#1B5E20'
                },
                TableType.TABLE.value: {
                    'shape': 'box',
                    'style': 'filled,rounded',
                    'fillcolor': '#E3F2FD',
                    'color': '#1976D2',
                    'fontname': 'Arial',
                    'fontsize': '11',
                    'fontcolor': '#0D47A1'
                },
                'unresolved': {
                    'shape': 'box',
                    'style': 'dashed,rounded',
                    'color': '#9E9E9E',
                    'fontname': 'Arial',
                    'fontsize': '11',
                    'fontcolor': '#616161'
                },
                'placeholder': {
                    'shape': 'note',
                    'style': 'dashed',
                    'color': '#9E9E9E',
                    'fontname': 'Arial Italic',
                    'fontsize': '10',
                    'fontcolor': '#616161'
                }
            },
            'root_style': {
                'penwidth': '3'
            },
            'edge_style': {
                'color': '#546E7A',
                'penwidth': '1.5',
                'arrowhead': 'vee'
            },
            'graph_attributes': {
                'bgcolor': 'white',
                'pad': '0.5',
                'nodesep': '0.4',
                'ranksep': '1.2'
            }
        }

    def build_digraph(self,
                      flow: FlowNodeView,
                      config: Optional[Dict] = None,
                      layout: str = "horizontal") -> Digraph:
        """
        Build the Graphviz digraph for a rendered flow view.

        Args:
            flow: Flow view produced by render_flow
            config: Custom configuration merged over the defaults
            layout: 'horizontal' or 'vertical'

        Returns:
            Configured Digraph (not rendered)
        """
        if layout not in LAYOUT_DIRECTIONS:
            raise ValueError(f"Unsupported layout '{layout}'. Use one of: {', '.join(LAYOUT_DIRECTIONS)}")

        graph_config = copy.deepcopy(self.default_config)
        if config:
            self._merge_config(graph_config, config)

        dot = Digraph(comment=f"Lineage flow - {flow.display_name}")
        dot.attr(rankdir=LAYOUT_DIRECTIONS[layout])
        dot.graph_attr.update(graph_config['graph_attributes'])
        dot.graph_attr.update({
            'label': f"Data flow into {flow.display_name}",
            'labelloc': 't',
            'fontsize': '14',
            'fontname': 'Arial'
        })

        self._add_node(dot, flow, graph_config, is_root=True)
        self._add_sources(dot, flow, graph_config)
        return dot

    def _node_label(self, node: FlowNodeView) -> str:
        label = node.display_name
        if node.database:
            label += f"\n{node.database}"
        if node.type:
            label += f"\n[{node.type}]"
        return label

    def _node_style(self, node: FlowNodeView, graph_config: Dict) -> Dict:
        node_config = graph_config['node_style']
        if not node.resolved:
            return dict(node_config['unresolved'])
        return dict(node_config[TableType.classify(node.type).value])

    def _add_node(self, dot: Digraph, node: FlowNodeView, graph_config: Dict, is_root: bool = False) -> None:
        style = self._node_style(node, graph_config)
        if is_root:
            style.update(graph_config['root_style'])
        dot.node(node.name, self._node_label(node), **style)

    def _add_sources(self, dot: Digraph, node: FlowNodeView, graph_config: Dict) -> None:
        edge_style = graph_config['edge_style']
        for child in node.children:
            self._add_node(dot, child, graph_config)
            dot.edge(child.name, node.name, **edge_style)
            self._add_sources(dot, child, graph_config)

        if node.placeholder is not None:
            placeholder_id = f"{node.name}__more"
            dot.node(placeholder_id, node.placeholder.label, **graph_config['node_style']['placeholder'])
            dot.edge(placeholder_id, node.name, style='dashed', **{
                key: value for key, value in edge_style.items() if key != 'style'
            })

    def create_flow_diagram(self,
                            flow: FlowNodeView,
                            output_path: str = "lineage_flow",
                            output_format: str = "png",
                            config: Optional[Dict] = None,
                            layout: str = "horizontal") -> str:
        """
        Render a flow diagram to a file.

        Args:
            flow: Flow view produced by render_flow
            output_path: Output file path (without extension)
            output_format: Output format ('png', 'svg', 'pdf', 'jpg', 'jpeg', 'dot', 'ps')
            config: Custom configuration dictionary
            layout: Layout direction ('horizontal' or 'vertical')

        Returns:
            Path to generated diagram file
        """
        if output_format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format '{output_format}'. Use one of: {', '.join(SUPPORTED_FORMATS)}")
        dot = self.build_digraph(flow, config=config, layout=layout)
        output_file = dot.render(output_path, format=output_format, cleanup=True)
        self.logger.info(f"Flow diagram written to {output_file}")
        return output_file

    def _merge_config(self, base_config: Dict, user_config: Dict) -> None:
        """Recursively merge user configuration with default configuration."""
        for key, value in user_config.items():
            if key in base_config and isinstance(base_config[key], dict) and isinstance(value, dict):
                self._merge_config(base_config[key], value)
            else:
                base_config[key] = value

    def get_supported_formats(self) -> List[str]:
        """Get list of supported output formats."""
        return list(SUPPORTED_FORMATS)


DEFAULT_VISUALIZATION_CONFIG = {
    'graph_attributes': {
        'size': '16,10',
        'dpi': '150'
    }
}


def create_flow_visualization(flow: FlowNodeView,
                              output_path: str = "lineage_flow",
                              output_format: str = "png",
                              layout: str = "horizontal",
                              config: Optional[Dict] = None) -> str:
    """
    Convenience function to create a flow diagram.

    Args:
        flow: Flow view produced by render_flow
        output_path: Output file path (without extension)
        output_format: Output format ('png', 'svg', 'pdf', 'jpg', 'jpeg')
        layout: Layout direction ('horizontal' or 'vertical')
        config: Custom configuration, DEFAULT_VISUALIZATION_CONFIG when None

    Returns:
        Path to generated visualization file
    """
    visualizer = FlowDiagramVisualizer()
    return visualizer.create_flow_diagram(
        flow,
        output_path=output_path,
        output_format=output_format,
        config=config if config is not None else DEFAULT_VISUALIZATION_CONFIG,
        layout=layout
    )
