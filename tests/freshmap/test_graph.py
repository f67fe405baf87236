"""Tests for graph assembly, categories and focus queries."""

from __future__ import annotations

from freshmap.core.github import InvalidSource
from freshmap.engines.staleness import DependencyMode, build_registry
from freshmap.graph.assembler import (
    assemble,
    node_id_for,
    placeholder_graph,
    status_counts,
)
from freshmap.graph.categories import (
    DEFAULT_CATEGORY,
    DEFAULT_VISIBLE_CATEGORIES,
    build_category_table,
    category_for_package,
)
from freshmap.graph.focus import ConnectivityMode, connected_node_ids, visible_subgraph
from freshmap.graph.models import GraphData, GraphEdge, GraphNode, NodeStatus


def _edge(source: str, target: str) -> GraphEdge:
    return GraphEdge(
        id=f"e:{source}->{target}",
        source=source,
        target=target,
        label="",
        color="#3b82f6",
        severity="current",
    )


def _node(node_id: str, category: str) -> GraphNode:
    return GraphNode(
        id=node_id,
        label=node_id,
        version="1.0.0",
        status=NodeStatus.UP_TO_DATE,
        url=f"https://github.com/acme/{node_id}",
        repo_name=node_id,
        category=category,
    )


# ── TestCategories ───────────────────────────────────────────────────────


class TestCategories:
    def test_package_name_wins_over_repo_name(self):
        table = {"@tscircuit/core": "Core", "core": "Specifications"}
        assert category_for_package("@tscircuit/core", "core", table) == "Core"

    def test_repo_name_fallback(self):
        table = {"circuit-json": "Specifications"}
        assert category_for_package("@scope/other", "circuit-json", table) == "Specifications"

    def test_unmatched_is_catch_all(self):
        assert category_for_package("left-pad", "left-pad") == DEFAULT_CATEGORY == "Downstream"

    def test_builtin_table(self):
        assert category_for_package("@tscircuit/core", "core") == "Core"
        assert category_for_package("tscircuit", "tscircuit") == "Packaged Bundles"

    def test_overrides(self):
        table = build_category_table({"@tscircuit/core": "Specifications", "cli": "Core"})
        assert table["@tscircuit/core"] == "Specifications"
        assert table["cli"] == "Core"
        assert table["circuit-json"] == "Specifications"

    def test_default_visible(self):
        assert "Downstream" not in DEFAULT_VISIBLE_CATEGORIES
        assert "UI Packages" not in DEFAULT_VISIBLE_CATEGORIES
        assert "Core" in DEFAULT_VISIBLE_CATEGORIES


# ── TestFocus ────────────────────────────────────────────────────────────


class TestFocus:
    EDGES = [_edge("1", "2"), _edge("2", "3")]

    def test_transitive_is_default(self):
        assert connected_node_ids("1", self.EDGES) == {"1", "2", "3"}

    def test_direct(self):
        assert connected_node_ids("1", self.EDGES, ConnectivityMode.DIRECT) == {"1", "2"}

    def test_direction_ignored(self):
        assert connected_node_ids("3", self.EDGES) == {"1", "2", "3"}
        assert connected_node_ids("3", self.EDGES, ConnectivityMode.DIRECT) == {"2", "3"}

    def test_isolated_node(self):
        assert connected_node_ids("9", self.EDGES) == {"9"}

    def test_visible_subgraph(self):
        graph = GraphData(
            nodes=[_node("a", "Core"), _node("b", "Downstream"), _node("c", "Core")],
            edges=[_edge("a", "b"), _edge("a", "c")],
        )
        visible = visible_subgraph(graph, {"Core"})
        assert visible.node_ids() == {"a", "c"}
        assert [e.id for e in visible.edges] == ["e:a->c"]


# ── TestAssembler ────────────────────────────────────────────────────────


class TestAssembler:
    def test_node_id_for(self):
        assert node_id_for("@acme/core", "acme", "core") == "@acme/core"
        assert node_id_for(None, "acme", "core") == "acme/core"
        assert node_id_for(None, "", "not a url") == "not a url"

    def test_invalid_url_is_single_error_node(self, make_result):
        entries = [InvalidSource("not a url"), make_result("core", "1.0.0")]
        graph = assemble(entries, build_registry([entries[1]]))
        invalid = graph.nodes[0]
        assert invalid.id == "not a url"
        assert invalid.label == "not a url"
        assert invalid.status is NodeStatus.ERROR
        assert invalid.error == "Invalid GitHub URL"
        assert all("not a url" not in (e.source, e.target) for e in graph.edges)

    def test_one_node_per_entry_and_no_dangling_edges(self, make_result):
        entries = [
            make_result("core", "2.0.0"),
            make_result("viewer", "1.0.0", deps={"core": "^1.0.0", "broken": "^1.0.0"}),
            make_result(None, None, repo="broken", error="boom", error_kind="fetch_failed"),
        ]
        registry = build_registry(entries)
        graph = assemble(entries, registry)
        assert [n.id for n in graph.nodes] == ["core", "viewer", "acme/broken"]
        ids = graph.node_ids()
        assert len(ids) == len(graph.nodes)
        for edge in graph.edges:
            assert edge.source in ids and edge.target in ids
        assert [e.id for e in graph.edges] == ["e:core->viewer"]

        by_id = {n.id: n for n in graph.nodes}
        assert by_id["viewer"].status is NodeStatus.STALE_DEPENDENCY
        assert by_id["core"].status is NodeStatus.UP_TO_DATE
        assert by_id["acme/broken"].status is NodeStatus.ERROR
        assert by_id["acme/broken"].version == "N/A"

    def test_colliding_package_names_get_unique_ids(self, make_result):
        first = make_result("dup", "1.0.0", repo="one")
        second = make_result("dup", "2.0.0", repo="two")
        graph = assemble([first, second], build_registry([first, second]))
        assert [n.id for n in graph.nodes] == ["dup", "acme/two"]

    def test_fallback_id_collision_gets_suffix(self, make_result):
        first = make_result("acme/x", "1.0.0", repo="x")
        failed = make_result(None, None, repo="x", error="boom")
        graph = assemble([first, failed], build_registry([first]))
        assert [n.id for n in graph.nodes] == ["acme/x", "acme/x#2"]

    def test_categories_applied(self, make_result):
        entries = [make_result("@tscircuit/core", "1.0.0", repo="core")]
        graph = assemble(entries, build_registry(entries))
        assert graph.nodes[0].category == "Core"

    def test_idempotent(self, make_result):
        entries = [
            make_result("core", "1.1.0"),
            make_result("app", "0.1.0", deps={"core": "~1.0.0"}, dev={"core": "^1.0.0"}),
        ]
        registry = build_registry(entries)
        first = assemble(entries, registry, DependencyMode.ALL)
        second = assemble(entries, registry, DependencyMode.ALL)
        assert first.model_dump_json() == second.model_dump_json()

    def test_mode_changes_classification(self, make_result):
        entries = [
            make_result("core", "2.0.0"),
            make_result("app", "0.1.0", dev={"core": "^1.0.0"}),
        ]
        registry = build_registry(entries)
        peer = assemble(entries, registry, DependencyMode.PEER)
        full = assemble(entries, registry, DependencyMode.ALL)
        assert peer.nodes[1].status is NodeStatus.UP_TO_DATE
        assert peer.edges == []
        assert full.nodes[1].status is NodeStatus.STALE_DEPENDENCY
        assert full.edges[0].animated is True

    def test_placeholder_graph(self):
        graph = placeholder_graph(
            ["https://github.com/tscircuit/core", "garbage", "https://github.com/tscircuit/core"]
        )
        assert [n.id for n in graph.nodes] == ["tscircuit/core", "garbage", "tscircuit/core#2"]
        assert all(n.status is NodeStatus.LOADING for n in graph.nodes)
        assert graph.edges == []

    def test_status_counts(self, make_result):
        entries = [make_result("a", "1.0.0"), InvalidSource("bad")]
        counts = status_counts(assemble(entries, build_registry(entries[:1])))
        assert counts == {
            "UP_TO_DATE": 1,
            "STALE_DEPENDENCY": 0,
            "ERROR": 1,
            "LOADING": 0,
        }
