#!/usr/bin/env python3
"""
Test script for cyclic lineage.
Builds notebook lineage where tables feed each other and checks that every
view of the graph stays bounded.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))
from lineage_viewer.core.graph_builder import build_lineage_graph
from lineage_viewer.core.parser import parse_relationships
from lineage_viewer.core.traversal import render_tree, render_flow, collect_lineage

CYCLIC_ROWS = [
    {"notebook_name": "nb_a", "source_table": "b(sales.db)", "source_type": "PARQUET",
     "destination_table": "a(sales.db)", "destination_type": "PARQUET"},
    {"notebook_name": "nb_b", "source_table": "a(sales.db)", "source_type": "PARQUET",
     "destination_table": "b(sales.db)", "destination_type": "PARQUET"},
    {"notebook_name": "nb_b", "source_table": "c.csv", "source_type": "CSV",
     "destination_table": "", "destination_type": ""},
    {"notebook_name": "nb_self", "source_table": "d(sales.db)", "source_type": "PARQUET",
     "destination_table": "d(sales.db)", "destination_type": "PARQUET"},
]


def _count(node):
    return 1 + sum(_count(child) for child in node.children)


def test_two_table_cycle():
    """A -> B -> A renders each table once per path."""
    print("Testing two-table cycle...")
    graph = build_lineage_graph(parse_relationships(CYCLIC_ROWS))

    view = render_tree(graph, "a(sales.db)", max_depth=10, expanded=graph.tables)
    print(f"   Tree nodes rendered: {_count(view)}")
    assert [child.name for child in view.children] == ["b(sales.db)"]
    assert [child.name for child in view.children[0].children] == ["c.csv"]

    flow = render_flow(graph, "b(sales.db)", max_depth=10)
    assert [child.name for child in flow.children] == ["a(sales.db)", "c.csv"]
    assert flow.children[0].children == ()
    print("✅ Two-table cycle stops at the repeated table")


def test_self_reference():
    """A table listed as its own source has no sources but stays a root."""
    print("Testing self-referencing table...")
    graph = build_lineage_graph(parse_relationships(CYCLIC_ROWS))

    assert "d(sales.db)" in [root.name for root in graph.roots]
    assert graph.get("d(sales.db)").source_names == []
    print("✅ Self reference ignored")


def test_collect_lineage_is_bounded():
    """The flattened walk terminates on cyclic input."""
    print("Testing flattened lineage walk...")
    graph = build_lineage_graph(parse_relationships(CYCLIC_ROWS))

    walk = collect_lineage(graph, "a(sales.db)", max_depth=50)
    for depth, name in walk:
        print(f"   {'  ' * depth}{name}")
    assert walk == [(0, "a(sales.db)"), (1, "b(sales.db)"), (2, "c.csv")]
    print("✅ Walk bounded")


if __name__ == "__main__":
    print("🔄 Cyclic lineage checks\n" + "=" * 40)
    test_two_table_cycle()
    test_self_reference()
    test_collect_lineage_is_bounded()
    print("=" * 40 + "\n🎉 All cyclic lineage checks passed")
