"""Impact analysis entry point: cache, store, traversal, scoring, advice.

:class:`ImpactAnalyzer` is synchronous. Its traversal only stops early at
the engine's checkpoints (operation cap, wall-clock budget, cancellation
event). A caller that gives up waiting from another thread must also set
the ``cancel_event`` it passed in, otherwise the walk keeps running until
it finishes or hits its own budget.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .cache import ResultCache
from .config import DEFAULT_DEPTH, MAX_DEPTH, MAX_TARGET_LENGTH, MIN_DEPTH, AnalysisSettings
from .errors import GraphUnavailableError, InvalidInputError, TargetNotFoundError
from .models import (
    AnalysisMetadata,
    ChangeType,
    DependencyGraph,
    ImpactAnalysis,
    ImpactedFile,
    RiskScoreFactors,
    TraversalResult,
    impact_level_for_distance,
    impact_reason,
)
from .path_resolver import suggest as default_suggest
from .recommendations import RecommendationGenerator
from .risk import RiskScorer
from .storage import GraphStore
from .traversal import TraversalEngine

logger = logging.getLogger(__name__)

SuggestFn = Callable[[str, List[str]], List[str]]


def normalize_target(raw: str) -> str:
    """Canonical node id for a user-supplied path.

    Raises:
        ValueError: empty path, path traversal segments, or an overlong path.
    """
    target = raw.replace("\x00", "").strip().replace("\\", "/").lstrip("/")
    if not target:
        raise ValueError("Target file path is required")
    if len(target) > MAX_TARGET_LENGTH:
        raise ValueError(f"Target path exceeds {MAX_TARGET_LENGTH} characters")
    parts = target.split("/")
    if ".." in parts or target.startswith("~") or "~" in parts:
        raise ValueError("Target path must not contain '..' or '~' segments")
    return target


def clamp_depth(depth: Optional[float], default: int = DEFAULT_DEPTH) -> int:
    """Floor ``depth`` and clamp it to the supported range."""
    if depth is None:
        depth = default
    return max(MIN_DEPTH, min(MAX_DEPTH, int(math.floor(depth))))


class TraceImpactInput(BaseModel):
    """Request for one impact analysis."""

    model_config = ConfigDict(populate_by_name=True)

    target: str = Field(..., description="Workspace-relative path of the changed file")
    change_type: ChangeType = Field(..., alias="changeType", description="Kind of change")
    depth: Optional[float] = Field(default=None, description="Hops to follow (1-5, default 3)")

    @field_validator("target", mode="before")
    @classmethod
    def _check_target(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Target file path is required and must be a string")
        return normalize_target(value)

    @field_validator("depth", mode="before")
    @classmethod
    def _check_depth(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Depth must be a number")
        if isinstance(value, int):
            # arbitrarily large ints cannot be converted to float
            return max(MIN_DEPTH, min(value, MAX_DEPTH))
        if not math.isfinite(value):
            raise ValueError("Depth must be a finite number")
        return value


class ImpactAnalyzer:
    """Computes the blast radius of a change against the store's graph."""

    def __init__(
        self,
        store: GraphStore,
        engine: Optional[TraversalEngine] = None,
        scorer: Optional[RiskScorer] = None,
        recommender: Optional[RecommendationGenerator] = None,
        cache: Optional[ResultCache] = None,
        suggest: Optional[SuggestFn] = None,
        settings: Optional[AnalysisSettings] = None,
    ) -> None:
        self.store = store
        self.settings = settings or AnalysisSettings()
        self.engine = engine or TraversalEngine(
            store,
            max_nodes=self.settings.max_nodes,
            max_cycles=self.settings.max_cycles,
            max_operations=self.settings.max_operations,
            time_budget_s=self.settings.time_budget_s,
            check_interval=self.settings.check_interval,
        )
        self.scorer = scorer or RiskScorer()
        self.recommender = recommender or RecommendationGenerator()
        if cache is None:
            cache = ResultCache(
                ttl_s=self.settings.cache_ttl_s,
                max_entries=self.settings.cache_max_entries,
                sweep_interval_s=self.settings.cache_sweep_interval_s,
            )
        self.cache = cache
        self.suggest = suggest or default_suggest

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze_impact(
        self,
        request: Union[TraceImpactInput, Mapping[str, Any]],
        cancel_event: Optional[threading.Event] = None,
    ) -> ImpactAnalysis:
        """Analyze the impact of changing ``request.target``.

        Args:
            request:      ``TraceImpactInput`` or a mapping with ``target``,
                          ``changeType`` (or ``change_type``) and ``depth``.
            cancel_event: Set it from another thread to stop the traversal
                          at its next checkpoint; the result is then marked
                          truncated.

        Raises:
            InvalidInputError:       bad target, change type or depth.
            GraphUnavailableError:   no graph loaded, or it has no nodes.
            TargetNotFoundError:     target is not a graph node.
            TraversalExhaustedError: traversal could not run at all.
        """
        started = time.perf_counter()
        params = self.parse_request(request)
        target = params.target
        change_type = params.change_type
        depth = clamp_depth(params.depth, self.settings.default_depth)

        key = self.cache.make_key(target, change_type, depth, self.store.version)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s (%s, depth %d)", target, change_type.value, depth)
            return cached

        graph = self.store.current()
        if graph is None or not graph.nodes:
            raise GraphUnavailableError()

        if not self.store.has_node(target):
            suggestions = self.suggest(target, self.store.node_ids())
            logger.info("Target %s not in graph (%d suggestions)", target, len(suggestions))
            raise TargetNotFoundError(target, suggestions)

        traversal = self.engine.traverse(target, depth, cancel_event)
        impacted = self._impacted_files(traversal, change_type)
        degraded: List[str] = []

        factors = RiskScoreFactors.from_impacted(impacted, len(traversal.cycles), change_type)
        risk = self.scorer.score(factors)
        if risk.degraded:
            degraded.append("risk_score")

        advice = self.recommender.generate(impacted, risk.value, traversal.cycles, change_type)
        if advice.degraded:
            degraded.append("recommendations")

        result = ImpactAnalysis(
            target=target,
            change_type=change_type,
            impacted_files=impacted,
            risk_score=risk.value,
            circular_dependencies=[list(cycle) for cycle in traversal.cycles],
            recommendations=advice.value,
            metadata=AnalysisMetadata(
                timestamp=datetime.now(timezone.utc).isoformat(),
                depth=depth,
                analysis_time_ms=round((time.perf_counter() - started) * 1000, 2),
                truncated=traversal.truncated,
                degraded=degraded,
            ),
        )
        # never cache a cancelled walk
        if traversal.stop_reason != "cancelled":
            self.cache.put(key, result)
        logger.info(
            "Analyzed %s: %d impacted, risk %.1f, %d cycles",
            target, len(impacted), result.risk_score, len(result.circular_dependencies),
        )
        return result

    def dependents_of(self, node_id: str) -> List[str]:
        return self.store.dependents_of(node_id)

    def current_graph(self) -> Optional[DependencyGraph]:
        return self.store.current()

    def close(self) -> None:
        self.cache.close()

    @staticmethod
    def parse_request(request: Union[TraceImpactInput, Mapping[str, Any]]) -> TraceImpactInput:
        if isinstance(request, TraceImpactInput):
            return request
        if not isinstance(request, Mapping):
            raise InvalidInputError("Request must be a mapping with target and changeType")
        try:
            return TraceImpactInput.model_validate(dict(request))
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
                for err in exc.errors()
            )
            raise InvalidInputError(f"Invalid impact request: {details}") from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _impacted_files(self, traversal: TraversalResult, change_type: ChangeType) -> List[ImpactedFile]:
        impacted: List[ImpactedFile] = []
        # distances keeps discovery order, so equal-rank ties stay deterministic
        for node_id, distance in traversal.distances.items():
            node = self.store.get_node(node_id)
            if node is None:
                logger.warning("Node not found in graph: %s", node_id)
                continue
            level = impact_level_for_distance(distance)
            impacted.append(
                ImpactedFile(
                    node_id=node_id,
                    path=node.path,
                    impact_level=level,
                    distance=distance,
                    reason=impact_reason(level, change_type),
                    color=level.color,
                )
            )
        impacted.sort(key=lambda f: (-f.impact_level.severity, f.distance))
        return impacted
