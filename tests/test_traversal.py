"""Tests for bounded, cycle-safe traversal."""

import math

import pytest

from lineage_viewer.core.graph_builder import build_lineage_graph
from lineage_viewer.core.models import LineageGraph, Relationship, TableNode
from lineage_viewer.core.traversal import (
    render_tree, render_flow, paginated_source_list, needs_list_view, collect_lineage, page_count,
)


@pytest.fixture
def chain_graph():
    """a <- b <- c <- d"""
    return build_lineage_graph([
        Relationship("nb", "b", "PARQUET", "a", "PARQUET"),
        Relationship("nb", "c", "PARQUET", "b", "PARQUET"),
        Relationship("nb", "d", "CSV", "c", "PARQUET"),
    ])


@pytest.fixture
def diamond_graph():
    """d reads x and y, which both read s."""
    return build_lineage_graph([
        Relationship("nb", "x", "PARQUET", "d", "PARQUET"),
        Relationship("nb", "y", "PARQUET", "d", "PARQUET"),
        Relationship("nb", "s", "CSV", "x", "PARQUET"),
        Relationship("nb", "s", "CSV", "y", "PARQUET"),
    ])


class TestRenderTree:
    """Test cases for the tree browser view."""

    def test_collapsed_root(self, sample_graph):
        view = render_tree(sample_graph, "stg_orders(sales.db)")

        assert view.depth == 0
        assert view.expandable
        assert not view.expanded
        assert view.children == ()
        assert view.source_count == 3
        assert view.notebook == "nb_orders"
        assert view.database == "sales"

    def test_expanded_nodes_materialize_children(self, sample_graph):
        expanded = {"orders_report(reporting.db)", "stg_orders(sales.db)"}
        view = render_tree(sample_graph, "orders_report(reporting.db)", expanded=expanded)

        assert [child.name for child in view.children] == ["stg_orders(sales.db)", "payments(finance.db)"]
        stg = view.children[0]
        assert stg.expanded
        assert [child.name for child in stg.children] == ["raw_orders.csv", "customers(crm.db)", "lookup.csv"]
        assert all(child.depth == 2 for child in stg.children)

    def test_depth_cap_makes_leaves(self, chain_graph):
        view = render_tree(chain_graph, "a", max_depth=2, expanded={"a", "b", "c"})
        c = view.children[0].children[0]

        assert c.name == "c"
        assert c.depth == 2
        assert c.source_count == 1
        assert not c.expandable
        assert not c.expanded
        assert c.children == ()

    def test_cycle_is_not_revisited_on_the_same_path(self, cyclic_graph):
        view = render_tree(cyclic_graph, "A", max_depth=50, expanded={"A", "B", "C"})
        names = [node.name for node in view.walk()]

        assert names == ["A", "B", "C"]

    def test_shared_source_rendered_under_each_branch(self, diamond_graph):
        view = render_tree(diamond_graph, "d", expanded={"d", "x", "y"})

        assert [child.name for child in view.children] == ["x", "y"]
        assert [grandchild.name for grandchild in view.children[0].children] == ["s"]
        assert [grandchild.name for grandchild in view.children[1].children] == ["s"]

    def test_search_applies_to_root_only(self, sample_graph):
        search = lambda node: "report" in node.name
        expanded = {"orders_report(reporting.db)"}

        assert render_tree(sample_graph, "stg_orders(sales.db)", search_predicate=search) is None
        view = render_tree(sample_graph, "orders_report(reporting.db)", expanded=expanded, search_predicate=search)
        assert [child.name for child in view.children] == ["stg_orders(sales.db)", "payments(finance.db)"]

    def test_filter_applies_at_every_depth(self, sample_graph):
        expanded = {"orders_report(reporting.db)"}
        only_reporting_or_sales = lambda node: node.database in ("reporting", "sales")
        view = render_tree(sample_graph, "orders_report(reporting.db)", expanded=expanded,
                           filter_predicate=only_reporting_or_sales)

        assert [child.name for child in view.children] == ["stg_orders(sales.db)"]

    def test_dangling_source_is_an_unresolved_leaf(self):
        graph = LineageGraph(tables={"d": TableNode(name="d", type="PARQUET", source_names=["ghost"])})
        view = render_tree(graph, "d", expanded={"d", "ghost"})
        ghost = view.children[0]

        assert ghost.name == "ghost"
        assert not ghost.resolved
        assert ghost.type is None
        assert ghost.database is None
        assert not ghost.expandable


class TestRenderFlow:
    """Test cases for the width-capped flow view."""

    def test_width_cap_with_placeholder(self, wide_graph):
        view = render_flow(wide_graph, "wide(mart.db)", max_depth=1, max_breadth=8)

        assert len(view.children) == 8
        assert view.truncated
        assert view.placeholder.hidden_count == 12
        assert view.placeholder.label == "+12 more"
        assert [child.name for child in view.children] == wide_graph.get("wide(mart.db)").source_names[:8]

    def test_no_placeholder_when_sources_fit(self, sample_graph):
        view = render_flow(sample_graph, "stg_orders(sales.db)", max_depth=1, max_breadth=3)

        assert len(view.children) == 3
        assert view.placeholder is None

    def test_depth_cap(self, sample_graph):
        view = render_flow(sample_graph, "orders_report(reporting.db)", max_depth=1)
        stg = view.children[0]

        assert stg.name == "stg_orders(sales.db)"
        assert stg.children == ()
        assert stg.source_count == 3

    def test_cycle_terminates(self, cyclic_graph):
        view = render_flow(cyclic_graph, "A", max_depth=10, max_breadth=8)

        assert [child.name for child in view.children] == ["B"]
        assert [child.name for child in view.children[0].children] == ["C"]

    def test_unknown_root(self, sample_graph):
        assert render_flow(sample_graph, "missing") is None

    def test_needs_list_view(self, wide_graph, sample_graph):
        assert needs_list_view(wide_graph, "wide(mart.db)", 8)
        assert not needs_list_view(sample_graph, "stg_orders(sales.db)", 8)
        assert not needs_list_view(sample_graph, "missing", 8)


class TestPaginatedSourceList:
    """Test cases for the flat source list."""

    @pytest.mark.parametrize("page_size", [1, 3, 7, 10, 20, 25])
    def test_pages_reproduce_source_order(self, wide_graph, page_size):
        sources = wide_graph.get("wide(mart.db)").source_names
        first = paginated_source_list(wide_graph, "wide(mart.db)", page_size, 0)

        assert first.page_count == math.ceil(len(sources) / page_size)
        collected = []
        for index in range(first.page_count):
            page = paginated_source_list(wide_graph, "wide(mart.db)", page_size, index)
            collected.extend(entry.name for entry in page.entries)
        assert collected == sources

    def test_positions_are_global(self, wide_graph):
        page = paginated_source_list(wide_graph, "wide(mart.db)", 10, 1)

        assert [entry.position for entry in page.entries] == list(range(11, 21))
        assert page.has_previous
        assert not page.has_next
        assert page.total == 20

    def test_out_of_range_pages_are_empty(self, wide_graph):
        assert paginated_source_list(wide_graph, "wide(mart.db)", 10, 5).entries == ()
        assert paginated_source_list(wide_graph, "wide(mart.db)", 10, -1).entries == ()

    def test_unknown_table_has_no_pages(self, sample_graph):
        page = paginated_source_list(sample_graph, "missing", 10, 0)

        assert page.page_count == 0
        assert page.entries == ()

    def test_invalid_page_size(self, wide_graph):
        with pytest.raises(ValueError):
            paginated_source_list(wide_graph, "wide(mart.db)", 0, 0)

    def test_page_count(self):
        assert page_count(0, 10) == 0
        assert page_count(10, 10) == 1
        assert page_count(11, 10) == 2


class TestCollectLineage:
    """Test cases for the iterative lineage walk."""

    def test_cycle_is_bounded(self, cyclic_graph):
        assert collect_lineage(cyclic_graph, "A", max_depth=10) == [(0, "A"), (1, "B"), (2, "C")]

    def test_depth_limit(self, chain_graph):
        assert collect_lineage(chain_graph, "a", max_depth=2) == [(0, "a"), (1, "b"), (2, "c")]

    def test_unknown_root(self, chain_graph):
        assert collect_lineage(chain_graph, "zzz") == []
