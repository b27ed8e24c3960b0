"""Risk scoring: impact counts to a single 0-10 severity number."""

from __future__ import annotations

import logging
import math
import numbers

from .models import Outcome, RiskScoreFactors

logger = logging.getLogger(__name__)

DIRECT_WEIGHT = 100
SECONDARY_WEIGHT = 50
TERTIARY_WEIGHT = 25
CIRCULAR_WEIGHT = 200

# Weighted sums at or above this saturate to 10.
SATURATION_POINT = 1000
_LOG_DENOMINATOR = math.log10(SATURATION_POINT + 1)

# (minimum impacted files, score) pairs for the count-based fallback.
FALLBACK_BUCKETS = ((50, 9.0), (20, 7.0), (10, 5.0), (5, 3.0), (1, 1.0))


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def round_half_up(value: float, places: int = 1) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def normalize(adjusted: float) -> float:
    """Log-compress a weighted impact sum into ``[0, 10]``."""
    if adjusted <= 0:
        return 0.0
    if adjusted >= SATURATION_POINT:
        return 10.0
    score = 10 * math.log10(adjusted + 1) / _LOG_DENOMINATOR
    return min(10.0, max(0.0, score))


def fallback_score(total_files: object) -> float:
    """Bucket score from the number of impacted files alone."""
    count = total_files if _is_finite_number(total_files) else 0
    for minimum, score in FALLBACK_BUCKETS:
        if count >= minimum:
            return score
    return 0.0


def risk_level(score: float) -> str:
    """Human label for a risk score."""
    if score >= 8:
        return "CRITICAL"
    if score >= 6:
        return "HIGH"
    if score >= 4:
        return "MEDIUM"
    if score >= 2:
        return "LOW"
    return "MINIMAL"


class RiskScorer:
    """Weighted, change-type adjusted, log-normalized risk score."""

    def raw_score(self, factors: RiskScoreFactors) -> float:
        base = (
            factors.direct * DIRECT_WEIGHT
            + factors.secondary * SECONDARY_WEIGHT
            + factors.tertiary * TERTIARY_WEIGHT
            + factors.circular * CIRCULAR_WEIGHT
        )
        return base * factors.change_type_multiplier

    def score(self, factors: RiskScoreFactors) -> Outcome[float]:
        inputs = (
            factors.direct,
            factors.secondary,
            factors.tertiary,
            factors.circular,
            factors.change_type_multiplier,
        )
        if not all(_is_finite_number(value) for value in inputs):
            total = sum(v for v in inputs[:3] if _is_finite_number(v))
            value = fallback_score(total)
            logger.warning("Risk factors not numeric (%s); using file-count score %.1f", factors, value)
            return Outcome.fallback(value, "non-numeric risk factors")

        try:
            adjusted = self.raw_score(factors)
            return Outcome.ok(round_half_up(normalize(adjusted)))
        except Exception as exc:
            value = fallback_score(factors.total_files)
            logger.warning("Risk scoring failed (%s); using file-count score %.1f", exc, value)
            return Outcome.fallback(value, str(exc))
