"""Revenue event detection and trend labels.

``detect_revenue_event`` checks a revenue snapshot against three rules,
first match wins:

1. growth >= 20 %                         → revenue_growth (60 % of MRR)
2. MRR crosses 25,000 this period         → mrr_milestone (15,000)
3. >= 100 transactions and growth > 10 %  → transaction_volume (40 % of MRR)
"""

from __future__ import annotations

from typing import Optional

from .. import constants
from ..schemas.event_schema import RevenueEvent, RevenueEventType
from ..schemas.metric_schema import RevenueSnapshot


def detect_revenue_event(snapshot: RevenueSnapshot) -> Optional[RevenueEvent]:
    """Return the first matching revenue event, or ``None``."""
    rate = snapshot.growth_rate_pct
    mrr = snapshot.current_mrr

    if rate >= constants.REVENUE_EVENT_GROWTH_PCT:
        return RevenueEvent(
            type=RevenueEventType.REVENUE_GROWTH,
            rationale=(
                f"Revenue growth of {rate:.1f}% MoM detected. Current MRR: ${mrr:,.2f}. "
                f"Sustained traction validates product-market fit."
            ),
            funding_recommendation=round(mrr * constants.REVENUE_EVENT_GROWTH_SHARE),
        )

    if mrr >= constants.MRR_MILESTONE_THRESHOLD > snapshot.previous_mrr:
        return RevenueEvent(
            type=RevenueEventType.MRR_MILESTONE,
            rationale=(
                f"Major MRR milestone achieved: ${mrr:,.2f} "
                f"(previous period ${snapshot.previous_mrr:,.2f})."
            ),
            funding_recommendation=constants.MRR_MILESTONE_RECOMMENDATION,
        )

    if (
        snapshot.transaction_count >= constants.TRANSACTION_VOLUME_THRESHOLD
        and rate > constants.TRANSACTION_VOLUME_MIN_GROWTH_PCT
    ):
        return RevenueEvent(
            type=RevenueEventType.TRANSACTION_VOLUME,
            rationale=(
                f"High transaction volume ({snapshot.transaction_count} transactions) with "
                f"{rate:.1f}% growth indicates strong market adoption."
            ),
            funding_recommendation=round(mrr * constants.TRANSACTION_VOLUME_SHARE),
        )

    return None


def classify_trend(current: float, previous: float) -> str:
    """``INCREASING``, ``DECREASING`` or ``STABLE``."""
    if current > previous:
        return "INCREASING"
    if current < previous:
        return "DECREASING"
    return "STABLE"
