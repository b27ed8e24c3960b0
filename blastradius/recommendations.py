"""Rule-based advisory text for an impact analysis."""

from __future__ import annotations

import logging
import math
import posixpath
from typing import Dict, List, Sequence, Tuple

from .models import ChangeType, ImpactedFile, ImpactLevel, Outcome

logger = logging.getLogger(__name__)

LOW_RISK_MESSAGE = "✅ Low risk change - proceed with standard code review"

# (substrings, advisory) pairs matched against lower-cased impacted paths.
PATH_HEURISTICS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("auth", "security", "login"),
     "🔐 Authentication system affected - verify security implications"),
    (("database", "model", "repository"),
     "💾 Data layer affected - consider database migration needs"),
    (("api", "controller", "endpoint"),
     "🌐 API endpoints affected - check backward compatibility"),
    (("config", "env", "setting"),
     "⚙️ Configuration files affected - verify environment consistency"),
    (("component", "view", "ui"),
     "🎨 UI components affected - test user-facing functionality"),
)

GENERIC_RECOMMENDATIONS: Dict[str, List[str]] = {
    "high": [
        "🚩 High-risk change - roll out behind a feature flag",
        "🧪 Write integration tests before merging",
        "📋 Prepare a rollback plan before deployment",
    ],
    "medium": [
        "🧪 Test all dependent files before merging",
        "🔍 Review dependents for breaking changes",
    ],
    "low": [LOW_RISK_MESSAGE],
}


def risk_tier(risk_score: float) -> str:
    """Map a score to ``low`` (<4), ``medium`` (<7) or ``high``."""
    try:
        score = float(risk_score)
    except (TypeError, ValueError):
        return "medium"
    if math.isnan(score):
        return "medium"
    if score >= 7:
        return "high"
    if score >= 4:
        return "medium"
    return "low"


class RecommendationGenerator:
    """Turns impacted files, score and cycles into ordered advice."""

    def generate(
        self,
        impacted_files: Sequence[ImpactedFile],
        risk_score: float,
        cycles: Sequence[Sequence[str]],
        change_type: ChangeType,
    ) -> Outcome[List[str]]:
        try:
            recommendations = self._apply_rules(impacted_files, risk_score, cycles, change_type)
        except Exception as exc:
            tier = risk_tier(risk_score)
            logger.warning("Recommendation rules failed (%s); using %s-risk defaults", exc, tier)
            return Outcome.fallback(list(GENERIC_RECOMMENDATIONS[tier]), str(exc))

        if not recommendations:
            recommendations = [LOW_RISK_MESSAGE]
        return Outcome.ok(recommendations)

    def _apply_rules(
        self,
        impacted_files: Sequence[ImpactedFile],
        risk_score: float,
        cycles: Sequence[Sequence[str]],
        change_type: ChangeType,
    ) -> List[str]:
        out: List[str] = []

        if risk_score >= 7:
            out.append("🚩 Consider feature flag deployment to enable safe rollback")
            out.append("⏰ Schedule deployment during low-traffic window")
        if risk_score >= 5:
            out.append("🧪 Write integration tests first to catch breaking changes")

        critical = [f for f in impacted_files if f.impact_level is ImpactLevel.CRITICAL]
        high = [f for f in impacted_files if f.impact_level is ImpactLevel.HIGH]

        if len(critical) > 10:
            out.append("📦 Consider breaking this change into smaller, incremental changes")
        if critical:
            out.append(f"⚠️ {len(critical)} files will break immediately - review carefully")

        if cycles:
            out.append("🔄 Resolve circular dependencies before refactoring to prevent cascading issues")
            if len(cycles) > 1:
                out.append(f"📊 {len(cycles)} circular dependency chains detected")

        nearest = sorted((critical + high)[:3], key=lambda f: f.distance)
        if nearest:
            names = ", ".join(posixpath.basename(f.path) for f in nearest)
            out.append(f"🎯 Priority test coverage needed: {names}")

        out.extend(self._path_rules(impacted_files))
        out.extend(self._change_type_rules(impacted_files, risk_score, change_type))
        return out

    @staticmethod
    def _path_rules(impacted_files: Sequence[ImpactedFile]) -> List[str]:
        paths = [f.path.lower() for f in impacted_files]
        return [
            advice
            for needles, advice in PATH_HEURISTICS
            if any(needle in p for p in paths for needle in needles)
        ]

    @staticmethod
    def _change_type_rules(
        impacted_files: Sequence[ImpactedFile],
        risk_score: float,
        change_type: ChangeType,
    ) -> List[str]:
        out: List[str] = []
        if change_type is ChangeType.DELETE and impacted_files:
            out.append("🗑️ Deprecate first, then remove once dependents are migrated")
        if risk_score >= 8:
            out.append("🚨 High-risk change detected - consider pair programming")
            out.append("📋 Create detailed rollback plan before deployment")
        if len(impacted_files) > 50:
            out.append("⚡ Large impact set - monitor performance after deployment")
        if risk_score >= 6:
            out.append("📚 Update documentation for affected components")
        return out
