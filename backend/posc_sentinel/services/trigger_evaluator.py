"""PoSC Trigger Evaluator.

Classifies a startup's trajectory from its most recent monthly samples
(newest first) and a trailing surge count:

1. no samples                      → no_action ("no data")
2. avg = mean(growth_rate_pct)
3. sustained = (#rates > 20) >= 2
4. first match wins:
   - avg > 30 and sustained and surges >= 2 → trigger
   - avg > 20 or surges >= 1                → monitor
   - otherwise                              → no_action

The evaluator never raises for empty or partial history; absence of data
is a business outcome, not an infrastructure failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .. import constants
from ..errors import InvariantViolation
from ..schemas.evaluation_schema import Recommendation, TriggerEvaluation
from ..schemas.metric_schema import MetricSample
from .clock import as_utc, utc_now


class GrowthObservation(Protocol):
    growth_rate_pct: float


NO_DATA_REASONING = "No monthly growth data available for evaluation."


def _reasoning(
    recommendation: Recommendation,
    avg: float,
    periods: int,
    surge_count: int,
    high_growth_periods: int,
) -> str:
    if recommendation is Recommendation.TRIGGER:
        return (
            f"Strong sustained growth detected: {avg:.1f}% average monthly growth over "
            f"{periods} months ({high_growth_periods} above "
            f"{constants.SUSTAINED_GROWTH_RATE_PCT:.0f}%) with {surge_count} surge events. "
            f"Recommend triggering PoSC funding milestone."
        )
    if recommendation is Recommendation.MONITOR:
        return (
            f"Positive growth trends observed: {avg:.1f}% average monthly growth over "
            f"{periods} months with {surge_count} surge events. "
            f"Continue monitoring for sustained pattern."
        )
    return (
        f"Growth below threshold: {avg:.1f}% average monthly growth over {periods} months "
        f"with {surge_count} surge events. No significant surge activity detected."
    )


def classify_growth(
    avg_growth_rate: float,
    sustained_growth: bool,
    surge_count: int,
) -> Recommendation:
    """Ordered decision; the most specific branch is checked first."""
    if (
        avg_growth_rate > constants.TRIGGER_AVG_GROWTH_PCT
        and sustained_growth
        and surge_count >= constants.TRIGGER_MIN_SURGES
    ):
        return Recommendation.TRIGGER
    if avg_growth_rate > constants.MONITOR_AVG_GROWTH_PCT or surge_count >= constants.MONITOR_MIN_SURGES:
        return Recommendation.MONITOR
    return Recommendation.NO_ACTION


def evaluate_trigger(
    entity_id: str,
    records: Sequence[GrowthObservation],
    surge_count: int,
    months_to_evaluate: int = constants.MONTHS_TO_EVALUATE,
    now: Optional[datetime] = None,
) -> TriggerEvaluation:
    """Evaluate the funding trigger for *entity_id*.

    Parameters
    ----------
    records:
        Monthly ``MetricSample`` / ``RevenueSnapshot`` records, newest
        first.  Only the first *months_to_evaluate* are used.
    surge_count:
        Surge periods in the trailing lookback window, as counted by the
        series repository.
    """
    if surge_count < 0:
        raise InvariantViolation(f"surge_count must be non-negative, got {surge_count}")
    if months_to_evaluate <= 0:
        raise InvariantViolation(f"months_to_evaluate must be positive, got {months_to_evaluate}")

    evaluated_at = as_utc(now) if now is not None else utc_now()
    window = list(records)[:months_to_evaluate]

    if not window:
        return TriggerEvaluation(
            entity_id=str(entity_id),
            evaluation_date=evaluated_at,
            avg_monthly_growth_rate=0.0,
            sustained_growth=False,
            recommendation=Recommendation.NO_ACTION,
            reasoning=NO_DATA_REASONING,
            growth_rates=[],
            surge_count=surge_count,
        )

    rates = [float(r.growth_rate_pct) for r in window]
    avg = sum(rates) / len(rates)
    high_growth_periods = sum(1 for rate in rates if rate > constants.SUSTAINED_GROWTH_RATE_PCT)
    sustained = high_growth_periods >= constants.SUSTAINED_GROWTH_MIN_PERIODS

    recommendation = classify_growth(avg, sustained, surge_count)

    latest = window[0]
    current_users = latest.new_count if isinstance(latest, MetricSample) else None
    previous_users = latest.previous_count if isinstance(latest, MetricSample) else None

    return TriggerEvaluation(
        entity_id=str(entity_id),
        evaluation_date=evaluated_at,
        avg_monthly_growth_rate=avg,
        sustained_growth=sustained,
        recommendation=recommendation,
        reasoning=_reasoning(recommendation, avg, len(rates), surge_count, high_growth_periods),
        growth_rates=rates,
        surge_count=surge_count,
        current_period_users=current_users,
        previous_period_users=previous_users,
    )
