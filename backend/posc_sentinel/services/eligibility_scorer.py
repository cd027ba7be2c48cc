"""Funding Eligibility Scorer.

Additive banded scoring; every factor is evaluated independently, then
summed and clamped:

- Revenue growth   (max 40): >20% → 40, >10% → 30, >5% → 20, >0% → 10
- Sustained streak (max 30): >=3 → 30, >=2 → 20, >=1 → 10
- Milestones       (max 20): >=3 → 20, >=2 → 15, >=1 → 10
- Risk deduction   (max 10): 3 per HIGH / CRITICAL factor

Rules
-----
- NO I/O
- NO hidden state
- Pure deterministic math
"""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple, Union

from .. import constants
from ..errors import InvariantViolation
from ..schemas.score_schema import EligibilityScore, RiskFactor, RiskSeverity

RiskInput = Union[RiskFactor, RiskSeverity, str]


def _clamp(value: int, lo: int = constants.SCORE_MIN, hi: int = constants.SCORE_MAX) -> int:
    """Clamp *value* to [lo, hi]."""
    return max(lo, min(hi, value))


def _band_above(value: float, bands: Sequence[Tuple[float, int]]) -> int:
    for lower, points in bands:
        if value > lower:
            return points
    return 0


def _band_at_least(value: int, bands: Sequence[Tuple[int, int]]) -> int:
    for minimum, points in bands:
        if value >= minimum:
            return points
    return 0


def _severity_of(risk: RiskInput) -> str:
    if isinstance(risk, RiskFactor):
        return risk.severity.value
    if isinstance(risk, RiskSeverity):
        return risk.value
    return str(risk).upper()


def risk_deduction(risk_factors: Iterable[RiskInput]) -> int:
    """``min(10, 3 * count of HIGH or CRITICAL factors)``."""
    severe = sum(
        1 for risk in risk_factors if _severity_of(risk) in constants.HIGH_RISK_SEVERITIES
    )
    return min(constants.RISK_MAX_DEDUCTION, constants.RISK_POINTS_PER_FACTOR * severe)


def score_funding_eligibility(
    growth_rate_pct: float,
    current_streak: int,
    milestone_count: int,
    risk_factors: Iterable[RiskInput] = (),
) -> EligibilityScore:
    """Compute the banded eligibility score.

    Parameters
    ----------
    growth_rate_pct:
        Latest revenue growth rate in percent.
    current_streak:
        ``GrowthStreakState.current_streak``.
    milestone_count:
        Number of achieved milestones.
    risk_factors:
        Risk factors (or bare severities).

    Returns
    -------
    EligibilityScore
        Band components plus ``score`` clamped to [0, 100].
    """
    if current_streak < 0 or milestone_count < 0:
        raise InvariantViolation(
            f"Counts must be non-negative (streak={current_streak}, milestones={milestone_count})"
        )

    growth_points = _band_above(growth_rate_pct, constants.GROWTH_BANDS)
    streak_points = _band_at_least(current_streak, constants.STREAK_BANDS)
    milestone_points = _band_at_least(milestone_count, constants.MILESTONE_BANDS)
    deduction = risk_deduction(risk_factors)

    return EligibilityScore(
        growth_points=growth_points,
        streak_points=streak_points,
        milestone_points=milestone_points,
        risk_deduction=deduction,
        score=_clamp(growth_points + streak_points + milestone_points - deduction),
    )


def compute_eligibility_score(
    growth_rate_pct: float,
    current_streak: int,
    milestone_count: int,
    risk_factors: Iterable[RiskInput] = (),
) -> int:
    """Integer-only shortcut for ``score_funding_eligibility(...).score``."""
    return score_funding_eligibility(
        growth_rate_pct, current_streak, milestone_count, risk_factors
    ).score
