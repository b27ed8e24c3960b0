"""Tests for the bounded reverse-dependency traversal."""

import sys
import threading

import pytest

from blastradius.errors import TraversalExhaustedError
from blastradius.storage import GraphStore
from blastradius.traversal import TraversalEngine
from conftest import FakeClock, make_graph


class TestTraversal:
    """Tests for discovery, distances and depth limits."""

    def test_linear_chain(self, chain_store: GraphStore):
        result = TraversalEngine(chain_store).traverse("fileA", 3)

        assert result.discovered == {"fileB", "fileC"}
        assert result.distances == {"fileB": 1, "fileC": 2}
        assert result.cycles == []
        assert not result.truncated

    def test_target_not_in_result(self, chain_store: GraphStore):
        result = TraversalEngine(chain_store).traverse("fileA", 3)
        assert "fileA" not in result.discovered
        assert "fileA" not in result.distances

    def test_no_dependents(self, chain_store: GraphStore):
        result = TraversalEngine(chain_store).traverse("fileC", 3)
        assert result.discovered == set()
        assert result.distances == {}

    @pytest.mark.parametrize("depth", [1, 2, 3, 5])
    def test_distances_never_exceed_depth(self, long_chain_store: GraphStore, depth: int):
        result = TraversalEngine(long_chain_store).traverse("n0", depth)

        assert len(result.discovered) == depth
        assert max(result.distances.values()) == depth
        assert all(d <= depth for d in result.distances.values())

    def test_discovery_order_distance(self, store: GraphStore):
        # api imports both model and login; login imports model.
        store.load(make_graph([("login", "model"), ("api", "model"), ("api", "login")]))
        result = TraversalEngine(store).traverse("model", 3)

        # api is one hop from model but the walk reaches it through login first
        assert result.distances == {"login": 1, "api": 2}

    def test_visited_nodes_not_rewalked(self, store: GraphStore):
        store.load(make_graph([("b", "a"), ("c", "a"), ("d", "b"), ("d", "c")]))
        result = TraversalEngine(store).traverse("a", 3)

        assert result.distances == {"b": 1, "d": 2, "c": 1}
        assert result.cycles == []


class TestCycles:
    """Tests for circular dependency detection."""

    def test_three_cycle(self, cycle_store: GraphStore):
        result = TraversalEngine(cycle_store).traverse("X", 3)

        assert result.cycles == [["X", "Z", "Y", "X"]]
        assert result.distances == {"Z": 1, "Y": 2}

    def test_cycle_beyond_depth_not_reported(self, cycle_store: GraphStore):
        result = TraversalEngine(cycle_store).traverse("X", 2)
        assert result.cycles == []

    def test_cycle_cap(self, store: GraphStore):
        # every leaf imports the hub and the hub imports every leaf
        leaves = [f"leaf{i}" for i in range(10)]
        edges = [(leaf, "hub") for leaf in leaves] + [("hub", leaf) for leaf in leaves]
        store.load(make_graph(edges))

        result = TraversalEngine(store, max_cycles=3).traverse("hub", 3)
        assert len(result.cycles) == 3
        for cycle in result.cycles:
            assert cycle[0] == cycle[-1] == "hub"


class TestGuards:
    """Tests for node, operation, time and cancellation limits."""

    def test_max_nodes_truncates(self, store: GraphStore):
        store.load(make_graph([(f"d{i}", "root") for i in range(20)]))
        result = TraversalEngine(store, max_nodes=5).traverse("root", 3)

        # the cap counts the target, which is dropped afterwards
        assert len(result.discovered) == 4
        assert result.truncated

    def test_operation_cap_truncates(self, long_chain_store: GraphStore):
        result = TraversalEngine(long_chain_store, max_operations=3).traverse("n0", 5)

        assert result.truncated
        assert result.operations == 3
        assert result.discovered == {"n1", "n2"}

    def test_default_operation_cap(self, store: GraphStore):
        assert TraversalEngine(store, max_nodes=10).max_operations == 100
        assert TraversalEngine(store, max_nodes=5000).max_operations == 10000

    def test_cancel_before_start(self, chain_store: GraphStore):
        cancel = threading.Event()
        cancel.set()
        result = TraversalEngine(chain_store).traverse("fileA", 3, cancel_event=cancel)

        assert result.truncated
        assert result.discovered == set()

    def test_time_budget(self, long_chain_store: GraphStore):
        clock = FakeClock()
        engine = TraversalEngine(long_chain_store, time_budget_s=1.0, check_interval=2, clock=clock)

        real_dependents = long_chain_store.dependents_of

        def slow_dependents(node_id):
            clock.advance(0.6)
            return real_dependents(node_id)

        long_chain_store.dependents_of = slow_dependents
        result = engine.traverse("n0", 5)

        assert result.truncated
        assert 0 < len(result.discovered) < 5

    def test_recursion_limit_raises(self, store: GraphStore):
        depth = sys.getrecursionlimit() + 100
        store.load(make_graph([(f"n{i + 1}", f"n{i}") for i in range(depth)]))
        engine = TraversalEngine(store, max_nodes=depth * 2, max_operations=depth * 2)

        with pytest.raises(TraversalExhaustedError):
            engine.traverse("n0", depth)
