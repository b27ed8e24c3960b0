"""Error types raised by the impact analysis engine.

Only validation, not-found and graph-unavailable conditions reach callers of
:meth:`~blastradius.analyzer.ImpactAnalyzer.analyze_impact`. Scoring and
recommendation failures are absorbed into degraded results instead.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ImpactAnalysisError(Exception):
    """Base exception for impact analysis failures."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            **self.context,
        }


class InvalidInputError(ImpactAnalysisError):
    """Bad target, change type or depth."""


class GraphFormatError(ImpactAnalysisError):
    """The graph provider returned a document we cannot load."""


class GraphUnavailableError(ImpactAnalysisError):
    """No graph is loaded, or the loaded graph is empty."""

    def __init__(self, message: str = "No graph data available. Please scan the project first.", **context: Any):
        super().__init__(message, **context)


class TargetNotFoundError(ImpactAnalysisError):
    """Target file is not a node of the current graph."""

    def __init__(self, target: str, suggestions: Optional[List[str]] = None):
        self.target = target
        self.suggestions = list(suggestions or [])
        super().__init__(
            f"Target file not found in dependency graph: {target}",
            target=target,
            suggestions=self.suggestions,
        )


class TraversalExhaustedError(ImpactAnalysisError):
    """Traversal could not produce even a partial result."""
