"""Core data models shared by the store, traversal, scoring and cache layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, Set, TypeVar

from .errors import GraphFormatError

T = TypeVar("T")


class ChangeType(str, Enum):
    """Kind of modification being analyzed."""

    REFACTOR = "refactor"
    DELETE = "delete"
    MODIFY = "modify"
    ADD_FEATURE = "add-feature"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]

    @property
    def verb(self) -> str:
        return _CHANGE_VERBS[self]


class ImpactLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def severity(self) -> int:
        """Higher is worse; used for sorting impacted files."""
        return _LEVEL_SEVERITY[self]

    @property
    def color(self) -> str:
        return IMPACT_LEVEL_COLORS[self]


_CHANGE_VERBS = {
    ChangeType.DELETE: "deleted",
    ChangeType.REFACTOR: "refactored",
    ChangeType.MODIFY: "modified",
    ChangeType.ADD_FEATURE: "enhanced",
}

_LEVEL_SEVERITY = {
    ImpactLevel.CRITICAL: 3,
    ImpactLevel.HIGH: 2,
    ImpactLevel.MEDIUM: 1,
    ImpactLevel.LOW: 0,
}

CHANGE_TYPE_MULTIPLIERS: Dict[ChangeType, float] = {
    ChangeType.DELETE: 1.5,
    ChangeType.REFACTOR: 1.2,
    ChangeType.MODIFY: 1.0,
    ChangeType.ADD_FEATURE: 0.8,
}

IMPACT_LEVEL_COLORS: Dict[ImpactLevel, str] = {
    ImpactLevel.CRITICAL: "#ef4444",
    ImpactLevel.HIGH: "#f97316",
    ImpactLevel.MEDIUM: "#eab308",
    ImpactLevel.LOW: "#22c55e",
}

_IMPACT_REASONS = {
    ImpactLevel.CRITICAL: "Directly imports the {verb} file - will break immediately",
    ImpactLevel.HIGH: "Depends on files that import the {verb} file - likely affected",
    ImpactLevel.MEDIUM: "Indirectly depends on the {verb} file - may be affected",
    ImpactLevel.LOW: "Distant dependency on the {verb} file - unlikely to be affected",
}


def impact_level_for_distance(distance: int) -> ImpactLevel:
    """Classify a dependent by its hop count from the changed file."""
    if distance == 1:
        return ImpactLevel.CRITICAL
    if distance == 2:
        return ImpactLevel.HIGH
    if distance == 3:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def impact_reason(level: ImpactLevel, change_type: ChangeType) -> str:
    return _IMPACT_REASONS[level].format(verb=change_type.verb)


# ===================================================================
# Graph
# ===================================================================

@dataclass(frozen=True)
class GraphNode:
    id: str
    path: str
    label: str
    package: Optional[str] = None


@dataclass(frozen=True)
class GraphEdge:
    """``source`` depends on (imports) ``target``."""

    source: str
    target: str


@dataclass
class DependencyGraph:
    nodes: List[GraphNode]
    edges: List[GraphEdge]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DependencyGraph":
        """Build a graph from the scanner's JSON document.

        Raises:
            GraphFormatError: when ``nodes``/``edges`` are missing, a node
                has no id, or a node's path/label/package is not a string.
        """
        if not isinstance(payload, dict):
            raise GraphFormatError("Graph document must be a JSON object")
        raw_nodes = payload.get("nodes")
        raw_edges = payload.get("edges")
        if not isinstance(raw_nodes, list):
            raise GraphFormatError("Invalid graph data: nodes array is missing or invalid")
        if not isinstance(raw_edges, list):
            raise GraphFormatError("Invalid graph data: edges array is missing or invalid")

        nodes: List[GraphNode] = []
        for index, raw in enumerate(raw_nodes):
            node_id = raw.get("id") if isinstance(raw, dict) else None
            if not node_id or not isinstance(node_id, str):
                raise GraphFormatError(f"Node at index {index} has no id", index=index)
            for key in ("path", "label", "package"):
                if raw.get(key) is not None and not isinstance(raw[key], str):
                    raise GraphFormatError(
                        f"Node at index {index} has a non-string {key}", index=index, field=key
                    )
            nodes.append(
                GraphNode(
                    id=node_id,
                    path=raw.get("path") or node_id,
                    label=raw.get("label") or node_id.rsplit("/", 1)[-1],
                    package=raw.get("package"),
                )
            )

        edges: List[GraphEdge] = []
        for index, raw in enumerate(raw_edges):
            if not isinstance(raw, dict) or "source" not in raw or "target" not in raw:
                raise GraphFormatError(f"Edge at index {index} needs source and target", index=index)
            edges.append(GraphEdge(source=str(raw["source"]), target=str(raw["target"])))

        metadata = payload.get("metadata") or {}
        return cls(nodes=nodes, edges=edges, metadata=dict(metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {k: v for k, v in vars(node).items() if v is not None}
                for node in self.nodes
            ],
            "edges": [{"source": e.source, "target": e.target} for e in self.edges],
            "metadata": dict(self.metadata),
        }


# ===================================================================
# Traversal / scoring
# ===================================================================

@dataclass
class TraversalResult:
    discovered: Set[str] = field(default_factory=set)
    distances: Dict[str, int] = field(default_factory=dict)
    cycles: List[List[str]] = field(default_factory=list)
    truncated: bool = False
    operations: int = 0
    stop_reason: Optional[str] = None


@dataclass
class RiskScoreFactors:
    direct: float = 0
    secondary: float = 0
    tertiary: float = 0
    circular: float = 0
    change_type_multiplier: float = 1.0

    @property
    def total_files(self) -> float:
        return self.direct + self.secondary + self.tertiary

    @classmethod
    def from_impacted(
        cls,
        impacted_files: Iterable["ImpactedFile"],
        circular: int,
        change_type: ChangeType,
    ) -> "RiskScoreFactors":
        factors = cls(
            circular=circular,
            change_type_multiplier=CHANGE_TYPE_MULTIPLIERS[change_type],
        )
        for item in impacted_files:
            if item.impact_level is ImpactLevel.CRITICAL:
                factors.direct += 1
            elif item.impact_level is ImpactLevel.HIGH:
                factors.secondary += 1
            else:
                factors.tertiary += 1
        return factors


@dataclass
class Outcome(Generic[T]):
    """A computed value plus whether it came from a fallback path."""

    value: T
    degraded: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> "Outcome[T]":
        return cls(value=value, degraded=True, reason=reason)


# ===================================================================
# Analysis result
# ===================================================================

@dataclass
class ImpactedFile:
    node_id: str
    path: str
    impact_level: ImpactLevel
    distance: int
    reason: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "path": self.path,
            "impactLevel": self.impact_level.value,
            "distance": self.distance,
            "reason": self.reason,
            "color": self.color,
        }


@dataclass
class AnalysisMetadata:
    timestamp: str
    depth: int
    analysis_time_ms: float
    truncated: bool = False
    degraded: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "depth": self.depth,
            "analysisTimeMs": self.analysis_time_ms,
            "truncated": self.truncated,
            "degraded": list(self.degraded),
        }


@dataclass
class ImpactAnalysis:
    target: str
    change_type: ChangeType
    impacted_files: List[ImpactedFile]
    risk_score: float
    circular_dependencies: List[List[str]]
    recommendations: List[str]
    metadata: AnalysisMetadata

    def files_at(self, level: ImpactLevel) -> List[ImpactedFile]:
        return [f for f in self.impacted_files if f.impact_level is level]

    @property
    def critical_count(self) -> int:
        return len(self.files_at(ImpactLevel.CRITICAL))

    @property
    def high_count(self) -> int:
        return len(self.files_at(ImpactLevel.HIGH))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "changeType": self.change_type.value,
            "impactedFiles": [f.to_dict() for f in self.impacted_files],
            "riskScore": self.risk_score,
            "circularDependencies": [list(cycle) for cycle in self.circular_dependencies],
            "recommendations": list(self.recommendations),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class CacheEntry:
    key: str
    result: ImpactAnalysis
    inserted_at: float
