"""Bounded reverse-dependency traversal with cycle detection.

The walk is depth-first and path sensitive: a node's distance is fixed the
first time the walk reaches it, so distances are *discovery-order*
distances. When a node can be reached by a short and a long path, the
recorded distance depends on the order of the dependents lists, and may be
larger than the shortest hop count.

Bounding happens at cooperative checkpoints only. Every ``check_interval``
operations the walk looks at the wall clock and at an optional
``threading.Event``; a caller that wants to abandon a traversal sets that
event. Timing out on the caller side without setting it does not stop the
CPU work already in progress.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional, Set

from .errors import TraversalExhaustedError
from .models import TraversalResult
from .storage import GraphStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_NODES = 1000
DEFAULT_MAX_CYCLES = 50
DEFAULT_TIME_BUDGET_S = 25.0
OPERATION_CEILING = 10000


class TraversalEngine:
    """Walks "who depends on me" edges outward from a changed node."""

    def __init__(
        self,
        store: GraphStore,
        max_nodes: int = DEFAULT_MAX_NODES,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        max_operations: Optional[int] = None,
        time_budget_s: float = DEFAULT_TIME_BUDGET_S,
        check_interval: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.max_nodes = max_nodes
        self.max_cycles = max_cycles
        self.max_operations = (
            max_operations if max_operations is not None
            else min(OPERATION_CEILING, max_nodes * 10)
        )
        self.time_budget_s = time_budget_s
        self.check_interval = max(1, check_interval)
        self.clock = clock

    def traverse(
        self,
        target: str,
        max_depth: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> TraversalResult:
        """Discover every node that transitively depends on ``target``.

        Args:
            target:       Node id of the changed file.
            max_depth:    Maximum hop count to follow.
            cancel_event: Optional event; once set, the walk stops at the
                          next checkpoint and returns what it has.

        Returns:
            :class:`TraversalResult` without the target itself.
        """
        walk = _Walk(self, max_depth, cancel_event)
        try:
            walk.visit(target, 0)
        except RecursionError as exc:
            raise TraversalExhaustedError(
                f"Traversal from '{target}' exceeded the interpreter recursion limit",
                target=target,
                max_depth=max_depth,
            ) from exc

        walk.result.stop_reason = walk.stop_reason
        walk.result.discovered.discard(target)
        walk.result.distances.pop(target, None)

        if walk.result.truncated:
            logger.warning(
                "Traversal from %s truncated (%s) after %d operations, %d nodes discovered",
                target, walk.stop_reason, walk.result.operations,
                len(walk.result.discovered),
            )
        return walk.result


class _Walk:
    """State for a single traversal run."""

    def __init__(
        self,
        engine: TraversalEngine,
        max_depth: int,
        cancel_event: Optional[threading.Event],
    ) -> None:
        self.engine = engine
        self.max_depth = max_depth
        self.cancel_event = cancel_event
        self.deadline = engine.clock() + engine.time_budget_s
        self.result = TraversalResult()
        self.current_path: List[str] = []
        self.on_path: Set[str] = set()
        self.visited: Set[str] = set()
        self.halted = False
        self.stop_reason: Optional[str] = None

    def _halt(self, reason: str) -> None:
        self.halted = True
        self.stop_reason = reason
        self.result.truncated = True

    def _checkpoint(self) -> bool:
        """Return True when the walk must stop."""
        if self.result.operations >= self.engine.max_operations:
            self._halt("operation limit")
        elif self.result.operations % self.engine.check_interval == 0:
            if self.cancel_event is not None and self.cancel_event.is_set():
                self._halt("cancelled")
            elif self.engine.clock() > self.deadline:
                self._halt("time budget")
        return self.halted

    def visit(self, node: str, distance: int) -> None:
        if self.halted or self._checkpoint():
            return
        self.result.operations += 1

        discovered = self.result.discovered
        if distance > self.max_depth:
            return
        if len(discovered) >= self.engine.max_nodes:
            self.result.truncated = True
            self.stop_reason = self.stop_reason or "node limit"
            return

        if node in self.on_path:
            if len(self.result.cycles) < self.engine.max_cycles:
                start = self.current_path.index(node)
                self.result.cycles.append(self.current_path[start:] + [node])
            return

        discovered.add(node)
        self.result.distances.setdefault(node, distance)
        self.current_path.append(node)
        self.on_path.add(node)

        for dependent in self.engine.store.dependents_of(node):
            if dependent in self.visited:
                continue
            self.visit(dependent, distance + 1)
            if self.halted:
                break

        self.current_path.pop()
        self.on_path.discard(node)
        self.visited.add(node)
