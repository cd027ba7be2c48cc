"""Funding Amount Estimator.

``amount = round(50_000 * min(growth * 10, 3) * min(revenue / 10_000, 2))``

Both multipliers are capped so unbounded growth or revenue never yields an
unbounded recommendation.  Neither is floored: negative growth gives
a negative amount, read by callers as "no funding recommended".  This is
the only implementation of the formula; the monitoring service and the ad-hoc
recommendation endpoint both call it.
"""

from __future__ import annotations

import math

from .. import constants
from ..schemas.funding_schema import FundingRecommendation


def _growth_multiplier(growth_rate: float) -> float:
    return min(growth_rate * constants.FUNDING_GROWTH_FACTOR, constants.FUNDING_GROWTH_CAP)


def _revenue_multiplier(current_revenue: float) -> float:
    return min(current_revenue / constants.FUNDING_REVENUE_DIVISOR, constants.FUNDING_REVENUE_CAP)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_funding_amount(growth_rate: float, current_revenue: float) -> int:
    """Recommended funding amount.

    *growth_rate* is a fraction (``0.25`` for 25 %), *current_revenue* is
    MRR in major currency units.
    """
    return _round_half_up(
        constants.FUNDING_BASE_AMOUNT
        * _growth_multiplier(growth_rate)
        * _revenue_multiplier(current_revenue)
    )


def recommend_funding(growth_rate: float, current_revenue: float) -> FundingRecommendation:
    """Same as ``estimate_funding_amount`` with the multipliers exposed."""
    return FundingRecommendation(
        growth_rate=growth_rate,
        current_revenue=current_revenue,
        growth_multiplier=_growth_multiplier(growth_rate),
        revenue_multiplier=_revenue_multiplier(current_revenue),
        recommended_amount=estimate_funding_amount(growth_rate, current_revenue),
    )
