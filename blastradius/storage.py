"""In-memory graph store with a reverse-dependency index.

The store holds exactly one graph at a time. ``load`` builds the new index
off to the side and swaps graph and index in together under a lock, so a
reader never observes a half-built index. Readers still must not rely on a
specific graph while a reload is in flight; that ordering is the caller's
responsibility.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .errors import GraphFormatError
from .models import DependencyGraph, GraphNode

logger = logging.getLogger(__name__)


class GraphStore:
    """Owns the current dependency graph and its reverse-dependency index."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._graph: Optional[DependencyGraph] = None
        self._nodes_by_id: Dict[str, GraphNode] = {}
        self._reverse_index: Dict[str, List[str]] = {}
        self._dangling_edges = 0
        self._version = 0

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def load(self, graph: DependencyGraph) -> None:
        """Replace the current graph and rebuild the index from scratch.

        The previous graph stays visible to readers until the new graph and
        its index are swapped in together under the lock.
        """
        nodes_by_id = {node.id: node for node in graph.nodes}
        reverse_index, dangling = _build_reverse_index(graph, nodes_by_id)

        with self._lock:
            self._graph = graph
            self._nodes_by_id = nodes_by_id
            self._reverse_index = reverse_index
            self._dangling_edges = dangling
            self._version += 1

        logger.info(
            "Loaded graph with %d nodes and %d edges (%d indexed targets)",
            len(graph.nodes), len(graph.edges), len(reverse_index),
        )

    def clear(self) -> None:
        with self._lock:
            self._graph = None
            self._nodes_by_id = {}
            self._reverse_index = {}
            self._dangling_edges = 0
            self._version += 1
        logger.debug("Cleared graph data and index")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def dependents_of(self, node_id: str) -> List[str]:
        """Nodes that import ``node_id``; empty when unknown."""
        return list(self._reverse_index.get(node_id, ()))

    def current(self) -> Optional[DependencyGraph]:
        return self._graph

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._nodes_by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes_by_id

    def node_ids(self) -> List[str]:
        return list(self._nodes_by_id)

    @property
    def version(self) -> int:
        """Load counter; changes whenever the graph is replaced or cleared."""
        return self._version

    def reverse_index(self) -> Dict[str, List[str]]:
        """Copy of the full index (mainly for inspection and tests)."""
        return {target: list(sources) for target, sources in self._reverse_index.items()}

    def stats(self) -> Dict[str, int]:
        graph = self._graph
        return {
            "nodes": len(graph.nodes) if graph else 0,
            "edges": len(graph.edges) if graph else 0,
            "indexed_targets": len(self._reverse_index),
            "dangling_edges": self._dangling_edges,
            "version": self._version,
        }


# ===================================================================
# Helpers
# ===================================================================

def _build_reverse_index(
    graph: DependencyGraph,
    nodes_by_id: Dict[str, GraphNode],
) -> Tuple[Dict[str, List[str]], int]:
    index: Dict[str, List[str]] = {}
    seen: Dict[str, Set[str]] = {}
    dangling = 0

    for edge in graph.edges:
        if edge.source not in nodes_by_id or edge.target not in nodes_by_id:
            dangling += 1
            logger.debug("Skipping dangling edge %s -> %s", edge.source, edge.target)
            continue
        sources = seen.setdefault(edge.target, set())
        if edge.source in sources:
            continue
        sources.add(edge.source)
        index.setdefault(edge.target, []).append(edge.source)

    if dangling:
        logger.warning("Skipped %d edge(s) referencing unknown nodes", dangling)
    return index, dangling


def load_graph_file(path: Path) -> DependencyGraph:
    """Read a scanner-produced graph JSON document from disk."""
    try:
        payload: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise GraphFormatError(f"Graph file not found: {path}", path=str(path)) from exc
    except json.JSONDecodeError as exc:
        raise GraphFormatError(f"Graph file is not valid JSON: {exc}", path=str(path)) from exc
    return DependencyGraph.from_dict(payload)
