"""Tests for risk scoring."""

import math

import pytest

from blastradius.models import (
    CHANGE_TYPE_MULTIPLIERS,
    ChangeType,
    ImpactedFile,
    ImpactLevel,
    RiskScoreFactors,
    impact_level_for_distance,
)
from blastradius.risk import RiskScorer, fallback_score, normalize, risk_level, round_half_up


def _score(**kwargs) -> float:
    return RiskScorer().score(RiskScoreFactors(**kwargs)).value


class TestImpactLevels:
    """Impact level is a function of distance only."""

    @pytest.mark.parametrize(
        "distance,level",
        [
            (0, ImpactLevel.LOW),
            (1, ImpactLevel.CRITICAL),
            (2, ImpactLevel.HIGH),
            (3, ImpactLevel.MEDIUM),
            (4, ImpactLevel.LOW),
            (9, ImpactLevel.LOW),
        ],
    )
    def test_level_for_distance(self, distance, level):
        assert impact_level_for_distance(distance) is level


class TestRiskScore:
    """Tests for the weighted log-normalized score."""

    def test_linear_chain_score(self):
        outcome = RiskScorer().score(RiskScoreFactors(direct=1, secondary=1))
        assert outcome.value == 7.3
        assert not outcome.degraded

    def test_zero_impact(self):
        assert _score() == 0.0

    def test_saturates_at_ten(self):
        assert _score(direct=10) == 10.0
        assert _score(direct=500, circular=50, change_type_multiplier=1.5) == 10.0

    def test_multiplier_scales(self):
        low = _score(direct=1, change_type_multiplier=CHANGE_TYPE_MULTIPLIERS[ChangeType.ADD_FEATURE])
        mid = _score(direct=1, change_type_multiplier=CHANGE_TYPE_MULTIPLIERS[ChangeType.MODIFY])
        high = _score(direct=1, change_type_multiplier=CHANGE_TYPE_MULTIPLIERS[ChangeType.DELETE])
        assert low < mid < high

    @pytest.mark.parametrize("field", ["direct", "secondary", "tertiary", "circular"])
    def test_monotonic_in_each_factor(self, field):
        scores = [_score(**{field: n}) for n in range(0, 12)]
        assert scores == sorted(scores)
        assert all(0 <= s <= 10 for s in scores)

    def test_round_half_up(self):
        assert round_half_up(7.25) == 7.3
        assert round_half_up(0.05) == 0.1
        assert round_half_up(7.24) == 7.2

    def test_normalize_bounds(self):
        assert normalize(-5) == 0.0
        assert normalize(1000) == 10.0
        assert 0 < normalize(1) < normalize(2) < 10

    def test_from_impacted_counts(self):
        files = [
            ImpactedFile(f"f{d}", f"f{d}", impact_level_for_distance(d), d, "", "")
            for d in (1, 1, 2, 3, 4)
        ]
        factors = RiskScoreFactors.from_impacted(files, circular=2, change_type=ChangeType.DELETE)
        assert (factors.direct, factors.secondary, factors.tertiary, factors.circular) == (2, 1, 2, 2)
        assert factors.change_type_multiplier == 1.5


class TestFallback:
    """Non-numeric inputs fall back to a file-count bucket."""

    @pytest.mark.parametrize(
        "total,expected",
        [(0, 0.0), (1, 1.0), (4, 1.0), (5, 3.0), (10, 5.0), (20, 7.0), (49, 7.0), (50, 9.0)],
    )
    def test_buckets(self, total, expected):
        assert fallback_score(total) == expected

    def test_nan_factor_degrades(self):
        outcome = RiskScorer().score(RiskScoreFactors(direct=12, secondary=math.nan))
        assert outcome.degraded
        assert outcome.value == 5.0
        assert outcome.reason

    def test_non_numeric_multiplier_degrades(self):
        outcome = RiskScorer().score(
            RiskScoreFactors(direct=3, tertiary=3, change_type_multiplier="huge")
        )
        assert outcome.degraded
        assert outcome.value == 3.0

    def test_infinite_factor_degrades(self):
        outcome = RiskScorer().score(RiskScoreFactors(direct=math.inf))
        assert outcome.degraded
        assert outcome.value == 0.0


class TestRiskLevel:
    @pytest.mark.parametrize(
        "score,label",
        [(9.1, "CRITICAL"), (8.0, "CRITICAL"), (6.0, "HIGH"), (4.5, "MEDIUM"), (2.0, "LOW"), (1.9, "MINIMAL")],
    )
    def test_labels(self, score, label):
        assert risk_level(score) == label
