"""Tests for the viewer controller and the debouncer."""

import threading

import pytest

from lineage_viewer.core.controller import ViewerController, Debouncer, FLOW_MODE, LIST_MODE
from lineage_viewer.core.errors import LineageLoadError, SchemaSaveError
from lineage_viewer.core.models import DestinationRoots, MatchingSources, SchemaColumn, FilterScope, SearchScope


class RecordingClient:
    """Stands in for SchemaApiClient."""

    def __init__(self, error=None):
        self.error = error
        self.saved = []

    def save_schema(self, csv_content, filename):
        self.saved.append((csv_content, filename))
        if self.error is not None:
            raise self.error
        return {"success": True, "path": f"/srv/{filename}"}


@pytest.fixture
def controller(viewer_config):
    controller = ViewerController(viewer_config)
    controller.load()
    yield controller
    controller.close()


class TestDebouncer:
    """Test cases for Debouncer."""

    def test_only_latest_submission_runs(self):
        calls = []
        debouncer = Debouncer(60)
        debouncer.submit(calls.append, "a")
        debouncer.submit(calls.append, "ab")
        debouncer.submit(calls.append, "abc")

        assert debouncer.pending
        assert debouncer.flush()
        assert calls == ["abc"]
        assert not debouncer.flush()

    def test_timer_fires_once_after_idle(self):
        calls = []
        fired = threading.Event()

        def record(value):
            calls.append(value)
            fired.set()

        debouncer = Debouncer(0.05)
        debouncer.submit(record, "first")
        debouncer.submit(record, "second")

        assert fired.wait(5)
        debouncer.cancel()
        assert calls == ["second"]

    def test_zero_delay_runs_immediately(self):
        calls = []
        Debouncer(0).submit(calls.append, 1)

        assert calls == [1]

    def test_cancel(self):
        calls = []
        debouncer = Debouncer(60)
        debouncer.submit(calls.append, 1)
        debouncer.cancel()

        assert not debouncer.flush()
        assert calls == []


class TestLoading:
    """Test cases for loading and stale-load rejection."""

    def test_load(self, controller):
        assert controller.error is None
        assert controller.stats() == {
            "tables": 6, "relationships": 5, "destinations": 2, "parquet": 4, "csv": 2,
        }
        assert controller.schema.has_schema("stg_orders(sales.db)")

    def test_missing_lineage_sets_error(self, viewer_config):
        controller = ViewerController(viewer_config)

        with pytest.raises(LineageLoadError):
            controller.load("vc_card")
        assert controller.graph is None
        assert "lineage_vc_card.csv" in controller.error
        assert controller.tree() == []

    def test_undecodable_lineage_sets_error(self, viewer_config, data_dir):
        (data_dir / "lineage_tinvay.csv").write_bytes(b"notebook_name,source_table\nnb,\xff\xfe\n")
        controller = ViewerController(viewer_config)

        with pytest.raises(LineageLoadError):
            controller.load()
        assert controller.loading is False
        assert "lineage_tinvay.csv" in controller.error

    def test_stale_load_is_ignored(self, controller):
        first = controller.begin_load()
        second = controller.begin_load()
        loaded = controller.loader.load(controller.product)

        assert not controller.complete_load(first, loaded)
        assert controller.complete_load(second, loaded)

    def test_late_response_after_product_switch(self, controller, viewer_config):
        ticket = controller.begin_load()
        loaded = controller.loader.load(controller.product)
        controller.product = viewer_config.get_product("vc_card")

        assert not controller.complete_load(ticket, loaded)

    def test_reload_clears_selection(self, controller):
        controller.select_table("stg_orders(sales.db)")
        controller.load()

        assert controller.selected_table is None
        assert controller.expanded == set()

    def test_select_product_resets_database(self, controller):
        controller.select_database("sales")

        with pytest.raises(LineageLoadError):
            controller.select_product("vc_card")
        assert controller.selected_database == "all"
        assert controller.product.id == "vc_card"


class TestInteraction:
    """Test cases for selection, filters and search."""

    def test_select_table_toggles_expansion(self, controller):
        controller.select_table("stg_orders(sales.db)")
        assert "stg_orders(sales.db)" in controller.expanded

        controller.select_table("stg_orders(sales.db)")
        assert "stg_orders(sales.db)" not in controller.expanded

    def test_select_leaf_does_not_expand(self, controller):
        controller.select_table("raw_orders.csv")

        assert controller.selected_table == "raw_orders.csv"
        assert controller.expanded == set()

    def test_select_new_table_resets_flow_state(self, controller):
        controller.select_table("stg_orders(sales.db)")
        controller.set_flow_mode(LIST_MODE)
        controller.source_page_index = 3
        controller.select_table("orders_report(reporting.db)")

        assert controller.flow_mode == FLOW_MODE
        assert controller.source_page_index == 0

    def test_invalid_flow_mode(self, controller):
        with pytest.raises(ValueError):
            controller.set_flow_mode("grid")

    def test_unknown_database(self, controller):
        with pytest.raises(ValueError):
            controller.select_database("nope")

    def test_tree_follows_expansion(self, controller):
        controller.toggle_node("orders_report(reporting.db)")
        nodes = controller.tree()

        assert [node.name for node in nodes] == ["orders_report(reporting.db)", "stg_orders(sales.db)"]
        assert [child.name for child in nodes[0].children] == ["stg_orders(sales.db)", "payments(finance.db)"]
        assert nodes[1].children == ()

    def test_destination_filter(self, controller):
        controller.select_database("sales")
        controller.toggle_node("stg_orders(sales.db)")
        nodes = controller.tree()

        assert isinstance(controller.root_view(), DestinationRoots)
        assert [node.name for node in nodes] == ["stg_orders(sales.db)"]
        assert nodes[0].children == ()

    def test_source_filter_roots_are_leaves(self, controller):
        controller.select_database("sales")
        controller.set_filter_scope(FilterScope.SOURCE)
        controller.expand(["stg_orders(sales.db)"])
        view = controller.root_view()
        nodes = controller.tree()

        assert isinstance(view, MatchingSources)
        assert [node.name for node in nodes] == ["stg_orders(sales.db)"]
        assert not nodes[0].expandable
        assert nodes[0].children == ()

    def test_search_filters_roots_and_auto_expands(self, controller):
        controller.set_search("pay", "all")
        nodes = controller.tree()

        assert [node.name for node in nodes] == ["orders_report(reporting.db)"]
        assert nodes[0].expanded
        assert "payments(finance.db)" in [child.name for child in nodes[0].children]

    def test_destination_search_does_not_auto_expand(self, controller):
        controller.set_search("orders", "destination")

        assert controller.expanded == set()
        assert len(controller.tree()) == 2

    def test_superseded_search_does_not_expand(self, viewer_config):
        viewer_config.search_debounce_seconds = 60
        controller = ViewerController(viewer_config)
        controller.load()
        controller.set_search("pay", "source")
        controller.set_search("zzz", "source")
        controller.flush_search()
        controller.close()

        assert controller.expanded == set()

    def test_auto_expand_from_previous_load_is_dropped(self, controller):
        controller.search_term = "pay"
        controller.search_scope = SearchScope.ALL
        previous_load = controller._load_counter
        controller.load()
        controller._apply_auto_expand("pay", previous_load)

        assert controller.expanded == set()
        controller._apply_auto_expand("pay", controller._load_counter)
        assert controller.expanded == {"orders_report(reporting.db)"}

    def test_database_options(self, controller):
        assert controller.database_options() == ["all", "crm", "finance", "reporting", "sales"]
        assert controller.database_options("re") == ["reporting"]


class TestFlowAndList:
    """Test cases for flow view and the paginated list."""

    def test_flow(self, controller):
        assert controller.flow() is None
        controller.select_table("stg_orders(sales.db)")
        view = controller.flow()

        assert view.name == "stg_orders(sales.db)"
        assert len(view.children) == 3
        assert not controller.offers_list_view()

    def test_paging_is_clamped(self, controller, wide_graph):
        controller.graph = wide_graph
        controller.select_table("wide(mart.db)")

        assert controller.offers_list_view()
        assert controller.flow().placeholder.hidden_count == 12
        assert controller.previous_page() == 0
        assert controller.next_page() == 1
        assert controller.next_page() == 1
        assert [entry.position for entry in controller.source_page().entries] == list(range(11, 21))
        assert controller.previous_page() == 0


class TestExportAndSchema:
    """Test cases for export and schema editing."""

    def test_export_snapshot(self, controller):
        snapshot = controller.export_snapshot()

        assert snapshot["product"] == "Tinvay"
        assert len(snapshot["relationships"]) == 5
        tables = {table["name"]: table for table in snapshot["tables"]}
        stg = tables["stg_orders(sales.db)"]
        assert stg["type"] == "PARQUET"
        assert stg["database"] == "sales"
        assert stg["sources"] == ["raw_orders.csv", "customers(crm.db)", "lookup.csv"]
        assert stg["notebooks"] == ["nb_orders"]
        assert [column["column_name"] for column in stg["schema"]] == ["order_id", "amount"]
        assert tables["raw_orders.csv"]["schema"] == []

    def test_export_without_data(self, viewer_config):
        with pytest.raises(LineageLoadError):
            ViewerController(viewer_config).export_snapshot()

    def test_save_without_api_falls_back_to_download(self, controller, viewer_config):
        outcome = controller.save_schema("raw_orders.csv", [
            SchemaColumn("id", "BIGINT", "NO"),
            SchemaColumn(""),
        ])

        assert not outcome.success
        assert outcome.filename == "schema_tinvay.csv"
        assert "Copy it into" in outcome.message
        fallback = viewer_config.downloads_dir / "schema_tinvay.csv"
        assert fallback.exists()
        assert "raw_orders.csv,id,BIGINT,NO" in fallback.read_text(encoding="utf-8")
        assert [column.column_name for column in controller.schema.get_table_schema("raw_orders.csv")] == ["id"]

    def test_save_through_api(self, viewer_config):
        client = RecordingClient()
        controller = ViewerController(viewer_config, schema_client=client)
        controller.load()
        outcome = controller.save_schema("raw_orders.csv", [SchemaColumn("id", "BIGINT", "NO")])

        assert outcome.success
        assert outcome.path == "/srv/schema_tinvay.csv"
        csv_content, filename = client.saved[0]
        assert filename == "schema_tinvay.csv"
        assert csv_content.count("\n") == 4
        assert not (viewer_config.downloads_dir / "schema_tinvay.csv").exists()

    def test_failed_api_save_still_updates_registry(self, viewer_config):
        client = RecordingClient(error=SchemaSaveError("Storage API not reachable"))
        controller = ViewerController(viewer_config, schema_client=client)
        controller.load()
        outcome = controller.save_schema("stg_orders(sales.db)", [SchemaColumn("order_id", "BIGINT", "NO")])

        assert not outcome.success
        assert "Storage API not reachable" in outcome.message
        assert outcome.fallback_path.endswith("schema_tinvay.csv")
        assert len(controller.schema.get_table_schema("stg_orders(sales.db)")) == 1

    def test_unwritable_downloads_dir_returns_warning(self, controller, viewer_config, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")
        viewer_config.downloads_dir = blocker
        outcome = controller.save_schema("lookup.csv", [SchemaColumn("code", "STRING", "YES")])

        assert not outcome.success
        assert outcome.fallback_path is None
        assert "could not be written" in outcome.message
        assert "lookup.csv,code,STRING,YES" in outcome.csv_content
        assert controller.schema.has_schema("lookup.csv")

    def test_reload_schema(self, controller, data_dir):
        (data_dir / "schema_tinvay.csv").write_text(
            "table_name,column_name,data_type,is_nullable,description,sample_values,business_meaning\n"
            "lookup.csv,code,STRING,YES,,,\n",
            encoding="utf-8",
        )
        registry = controller.reload_schema()

        assert registry.has_schema("lookup.csv")
        assert not registry.has_schema("stg_orders(sales.db)")

    def test_column_lineage_for(self, controller):
        groups = controller.column_lineage_for("orders_report(reporting.db)")
        by_source = controller.column_lineage_for("stg_orders(sales.db)", group_by="source")

        assert list(groups) == ["total_amount"]
        assert list(by_source) == ["raw_orders.csv"]
