"""Metric Sample Builder.

Turns a set of dated raw records into one aggregated ``MetricSample`` for
a period: counts for the current and the immediately preceding window,
growth rate, growth multiplier and surge flag.

Rules
-----
- ``build_metric_sample`` is pure: NO I/O, NO clock reads
- Windows are half-open and contiguous:
  current  = [now - window, now)
  previous = [now - 2*window, now - window)
- Division by zero is guarded: rate and multiplier are 0 when the
  previous count is 0 (never inf / NaN)
- A source failure propagates as ``DataSourceUnavailable``; it is never
  turned into a zero-count sample
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from .. import constants
from ..errors import InvariantViolation
from ..schemas.metric_schema import DailyCount, MetricSample, PeriodType
from ..schemas.records_schema import SignupEvent
from .clock import as_utc
from .sources import RawEventSource

logger = logging.getLogger(__name__)

Number = Union[int, float]


# ===================================================================== #
#  Growth formulas                                                        #
# ===================================================================== #

def _check_non_negative(current: Number, previous: Number) -> None:
    if current < 0 or previous < 0:
        raise InvariantViolation(
            f"Growth inputs must be non-negative (current={current}, previous={previous})"
        )


def compute_growth_rate(current: Number, previous: Number) -> float:
    """``(current - previous) / previous * 100``, or ``0.0`` when previous is 0."""
    _check_non_negative(current, previous)
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def compute_growth_multiplier(current: Number, previous: Number) -> float:
    """``current / previous``, or ``0.0`` when previous is 0."""
    _check_non_negative(current, previous)
    if previous == 0:
        return 0.0
    return current / previous


def is_surge(growth_multiplier: float) -> bool:
    """Strictly above the surge multiplier; exactly 1.5 is not a surge."""
    return growth_multiplier > constants.SURGE_MULTIPLIER


# ===================================================================== #
#  Periods                                                                #
# ===================================================================== #

def window_days_for(period_type: PeriodType) -> int:
    return constants.WINDOW_DAYS[PeriodType(period_type).value]


def period_key_for(instant: datetime, period_type: PeriodType) -> str:
    """Canonical period key: ``2025-W04`` (ISO week) or ``2025-01``."""
    instant = as_utc(instant)
    if PeriodType(period_type) is PeriodType.WEEKLY:
        iso_year, iso_week, _ = instant.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return f"{instant.year}-{instant.month:02d}"


def _daily_breakdown(timestamps: Iterable[datetime]) -> List[DailyCount]:
    per_day = Counter(ts.date() for ts in timestamps)
    return [DailyCount(date=day, count=count) for day, count in sorted(per_day.items())]


# ===================================================================== #
#  Public API                                                             #
# ===================================================================== #

def build_metric_sample(
    entity_id: str,
    records: Iterable[SignupEvent],
    now: datetime,
    period_type: PeriodType = PeriodType.WEEKLY,
    window_days: Optional[int] = None,
    include_breakdown: Optional[bool] = None,
) -> MetricSample:
    """Aggregate *records* into a ``MetricSample`` ending at *now*.

    Parameters
    ----------
    entity_id:
        Opaque identifier of the monitored startup.
    records:
        Dated records; anything outside both windows is ignored.
    now:
        Exclusive end of the current window.
    period_type:
        ``weekly`` (7-day windows) or ``monthly`` (30-day windows).
    window_days:
        Override of the window length implied by *period_type*.
    include_breakdown:
        Attach a per-date breakdown of the current window.  Defaults to
        ``True`` for weekly samples only, to bound monthly sample size.

    Returns
    -------
    MetricSample
    """
    period_type = PeriodType(period_type)
    days = window_days if window_days is not None else window_days_for(period_type)
    if days <= 0:
        raise InvariantViolation(f"window_days must be positive, got {days}")

    now = as_utc(now)
    window = timedelta(days=days)
    window_start = now - window
    previous_start = now - 2 * window

    current: List[datetime] = []
    previous_count = 0
    for record in records:
        ts = as_utc(record.timestamp)
        if window_start <= ts < now:
            current.append(ts)
        elif previous_start <= ts < window_start:
            previous_count += 1

    new_count = len(current)
    growth_rate = compute_growth_rate(new_count, previous_count)
    multiplier = compute_growth_multiplier(new_count, previous_count)

    if include_breakdown is None:
        include_breakdown = period_type is PeriodType.WEEKLY

    return MetricSample(
        entity_id=str(entity_id),
        period_type=period_type,
        period_key=period_key_for(now, period_type),
        window_start=window_start,
        window_end=now,
        new_count=new_count,
        previous_count=previous_count,
        growth_rate_pct=growth_rate,
        growth_multiplier=multiplier,
        surge=is_surge(multiplier),
        daily_breakdown=_daily_breakdown(current) if include_breakdown else None,
    )


def collect_metric_sample(
    source: RawEventSource,
    entity_id: str,
    period_type: PeriodType,
    now: datetime,
) -> MetricSample:
    """Fetch both windows from *source* and build the sample.

    Raises
    ------
    DataSourceUnavailable
        Propagated unchanged from the source.
    """
    period_type = PeriodType(period_type)
    now = as_utc(now)
    window = timedelta(days=window_days_for(period_type))

    events = source.fetch_events(str(entity_id), now - 2 * window, now)
    sample = build_metric_sample(entity_id, events, now, period_type)

    logger.info(
        "Built %s sample %s for %s: new=%d previous=%d rate=%.2f%% surge=%s",
        period_type.value,
        sample.period_key,
        entity_id,
        sample.new_count,
        sample.previous_count,
        sample.growth_rate_pct,
        sample.surge,
    )
    return sample
