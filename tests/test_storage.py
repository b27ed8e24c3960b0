"""Tests for the graph store and its reverse-dependency index."""

import json
from pathlib import Path

import pytest

from blastradius.errors import GraphFormatError
from blastradius.models import DependencyGraph, GraphEdge
from blastradius.storage import GraphStore, load_graph_file
from conftest import make_graph


class TestReverseIndex:
    """Tests for building the reverse-dependency index."""

    def test_dependents_of_lists_importers(self, chain_store: GraphStore):
        assert chain_store.dependents_of("fileA") == ["fileB"]
        assert chain_store.dependents_of("fileB") == ["fileC"]
        assert chain_store.dependents_of("fileC") == []

    def test_unknown_node_has_no_dependents(self, chain_store: GraphStore):
        assert chain_store.dependents_of("nope") == []

    def test_duplicate_edges_are_collapsed(self, store: GraphStore):
        store.load(make_graph([("b", "a"), ("b", "a"), ("c", "a")]))
        assert store.dependents_of("a") == ["b", "c"]

    def test_index_entries_come_from_edges(self, store: GraphStore):
        graph = make_graph([("b", "a"), ("c", "a"), ("c", "b"), ("d", "c"), ("b", "a")])
        store.load(graph)
        edge_set = {(e.source, e.target) for e in graph.edges}

        index = store.reverse_index()
        assert sum(len(sources) for sources in index.values()) <= len(graph.edges)
        for target, sources in index.items():
            for source in sources:
                assert (source, target) in edge_set

    def test_dangling_edges_skipped_and_counted(self, store: GraphStore):
        graph = make_graph([("b", "a")])
        graph.edges.append(GraphEdge(source="ghost", target="a"))
        graph.edges.append(GraphEdge(source="b", target="missing"))
        store.load(graph)

        assert store.dependents_of("a") == ["b"]
        assert "missing" not in store.reverse_index()
        assert store.stats()["dangling_edges"] == 2

    def test_dependents_of_returns_copy(self, chain_store: GraphStore):
        dependents = chain_store.dependents_of("fileA")
        dependents.append("intruder")
        assert chain_store.dependents_of("fileA") == ["fileB"]


class TestLoadAndClear:
    """Tests for replacing and clearing graphs."""

    def test_load_replaces_previous_graph(self, chain_store: GraphStore):
        chain_store.load(make_graph([("y", "x")]))

        assert chain_store.dependents_of("fileA") == []
        assert chain_store.dependents_of("x") == ["y"]
        assert not chain_store.has_node("fileA")
        assert sorted(chain_store.node_ids()) == ["x", "y"]

    def test_version_increases_on_load_and_clear(self, store: GraphStore):
        start = store.version
        store.load(make_graph([("b", "a")]))
        loaded = store.version
        store.clear()

        assert loaded > start
        assert store.version > loaded

    def test_reload_bumps_version_once(self, chain_store: GraphStore):
        before = chain_store.version
        chain_store.load(make_graph([("y", "x")]))
        assert chain_store.version == before + 1

    def test_old_graph_visible_while_new_index_builds(self, chain_store: GraphStore, monkeypatch):
        import blastradius.storage as storage_module

        old_graph = chain_store.current()
        seen = []
        real_build = storage_module._build_reverse_index

        def observing_build(graph, nodes_by_id):
            seen.append((chain_store.current(), chain_store.dependents_of("fileA")))
            return real_build(graph, nodes_by_id)

        monkeypatch.setattr(storage_module, "_build_reverse_index", observing_build)
        chain_store.load(make_graph([("y", "x")]))

        assert seen == [(old_graph, ["fileB"])]
        assert chain_store.dependents_of("x") == ["y"]

    def test_clear_resets_state(self, chain_store: GraphStore):
        chain_store.clear()

        assert chain_store.current() is None
        assert chain_store.node_ids() == []
        assert chain_store.stats()["nodes"] == 0
        assert chain_store.reverse_index() == {}

    def test_get_node(self, chain_store: GraphStore):
        node = chain_store.get_node("fileB")
        assert node is not None
        assert node.path == "fileB"
        assert chain_store.get_node("nope") is None

    def test_stats(self, chain_store: GraphStore):
        stats = chain_store.stats()
        assert stats["nodes"] == 3
        assert stats["edges"] == 2
        assert stats["indexed_targets"] == 2
        assert stats["dangling_edges"] == 0


class TestGraphDocument:
    """Tests for reading scanner graph documents."""

    def test_from_dict_defaults(self):
        graph = DependencyGraph.from_dict(
            {"nodes": [{"id": "src/a.ts"}], "edges": [], "metadata": {"scanPath": "src"}}
        )
        node = graph.nodes[0]
        assert node.path == "src/a.ts"
        assert node.label == "a.ts"
        assert graph.metadata == {"scanPath": "src"}

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"edges": []},
            {"nodes": [], "edges": "nope"},
            {"nodes": [{"path": "no-id.ts"}], "edges": []},
            {"nodes": [{"id": "a"}], "edges": [{"source": "a"}]},
            {"nodes": [{"id": "a", "path": 5}], "edges": []},
            {"nodes": [{"id": "a", "label": ["a.ts"]}], "edges": []},
            {"nodes": [{"id": "a", "package": 1}], "edges": []},
        ],
    )
    def test_from_dict_rejects_malformed(self, payload):
        with pytest.raises(GraphFormatError):
            DependencyGraph.from_dict(payload)

    def test_load_graph_file(self, sample_graph_path: Path):
        graph = load_graph_file(sample_graph_path)
        assert len(graph.nodes) == 7
        assert len(graph.edges) == 6
        assert graph.metadata["workspaceRoot"] == "/workspace/shop"

    def test_load_graph_file_missing(self, tmp_path: Path):
        with pytest.raises(GraphFormatError, match="not found"):
            load_graph_file(tmp_path / "missing.json")

    def test_load_graph_file_bad_json(self, tmp_path: Path):
        path = tmp_path / "graph.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(GraphFormatError, match="not valid JSON"):
            load_graph_file(path)

    def test_to_dict_round_trips_through_from_dict(self, sample_graph_path: Path):
        graph = load_graph_file(sample_graph_path)
        again = DependencyGraph.from_dict(json.loads(json.dumps(graph.to_dict())))
        assert again == graph
