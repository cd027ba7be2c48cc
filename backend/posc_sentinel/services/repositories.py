"""Persistence boundary.

``SeriesRepository`` and ``MilestoneStore`` are the interfaces the pipeline
depends on; the ``Sql*`` classes implement them (and the evaluation / event
logs) on top of a SQLAlchemy ``Session``.

Rules
-----
- One sample per (startup, period type, period key); a second append for
  the same period is a no-op and returns ``False``
- Sequences returned by ``latest`` are newest first
- Timestamps are stored naive UTC and come back aware UTC
"""

from __future__ import annotations

import abc
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import EntityNotFound
from ..models import (
    AchievedMilestone,
    GrowthMetric,
    MonitoringEvent,
    RevenueSnapshotRecord,
    TriggerEvaluationRecord,
)
from ..schemas.evaluation_schema import Recommendation, TriggerEvaluation
from ..schemas.event_schema import EventType, MonitoringEventOut
from ..schemas.metric_schema import (
    DailyCount,
    MetricSample,
    MonthlyStats,
    PeriodType,
    RevenueSnapshot,
)
from ..schemas.milestone_schema import NewMilestone
from .clock import as_naive_utc, as_utc, utc_now

logger = logging.getLogger(__name__)

_MONTHLY_STATS_WINDOW = 12


# ===================================================================== #
#  Abstract interfaces                                                    #
# ===================================================================== #

class SeriesRepository(abc.ABC):
    """Ordered, per-startup history of metric samples."""

    @abc.abstractmethod
    def append(self, entity_id: str, sample: MetricSample) -> bool:
        """Store *sample*; ``False`` if its period already exists."""

    @abc.abstractmethod
    def latest(self, entity_id: str, period_type: PeriodType, limit: int) -> List[MetricSample]:
        """Most recent *limit* samples of *period_type*, newest first."""

    @abc.abstractmethod
    def count_surges(self, entity_id: str, since_days: int, now: Optional[datetime] = None) -> int:
        """Surge samples whose window ended within the last *since_days*."""


class MilestoneStore(abc.ABC):
    @abc.abstractmethod
    def get(self, entity_id: str) -> Set[str]:
        """Labels already achieved."""

    @abc.abstractmethod
    def add(self, entity_id: str, milestones: Iterable[NewMilestone]) -> None:
        """Record newly achieved milestones."""


# ===================================================================== #
#  Row <-> schema conversion                                              #
# ===================================================================== #

def _sample_from_row(row: GrowthMetric) -> MetricSample:
    breakdown = None
    if row.daily_breakdown_json:
        breakdown = [DailyCount(**item) for item in json.loads(row.daily_breakdown_json)]
    return MetricSample(
        entity_id=str(row.startup_id),
        period_type=PeriodType(row.period_type),
        period_key=row.period_key,
        window_start=as_utc(row.window_start),
        window_end=as_utc(row.window_end),
        new_count=row.new_count,
        previous_count=row.previous_count,
        growth_rate_pct=row.growth_rate_pct,
        growth_multiplier=row.growth_multiplier,
        surge=row.surge,
        daily_breakdown=breakdown,
    )


def _snapshot_from_row(row: RevenueSnapshotRecord) -> RevenueSnapshot:
    return RevenueSnapshot(
        entity_id=str(row.startup_id),
        period_key=row.period_key,
        window_start=as_utc(row.window_start),
        window_end=as_utc(row.window_end),
        current_mrr=row.current_mrr,
        previous_mrr=row.previous_mrr,
        growth_rate_pct=row.growth_rate_pct,
        transaction_count=row.transaction_count,
        customer_count=row.customer_count,
    )


def _evaluation_from_row(row: TriggerEvaluationRecord) -> TriggerEvaluation:
    return TriggerEvaluation(
        entity_id=str(row.startup_id),
        evaluation_date=as_utc(row.evaluation_date),
        avg_monthly_growth_rate=row.avg_monthly_growth_rate,
        sustained_growth=row.sustained_growth,
        recommendation=Recommendation(row.recommendation),
        reasoning=row.reasoning,
        growth_rates=json.loads(row.growth_rates_json),
        surge_count=row.surge_count,
        current_period_users=row.current_period_users,
        previous_period_users=row.previous_period_users,
    )


def event_out(row: MonitoringEvent) -> MonitoringEventOut:
    """Build the API representation of a stored event."""
    return MonitoringEventOut(
        id=row.id,
        startup_id=row.startup_id,
        event_type=EventType(row.event_type),
        event_data=json.loads(row.event_data_json or "{}"),
        trigger_value=row.trigger_value,
        threshold_value=row.threshold_value,
        funding_eligible=row.funding_eligible,
        funding_amount=row.funding_amount,
        severity=row.severity,
        priority=row.priority,
        created_at=row.created_at,
        notified_at=row.notified_at,
        resolved_at=row.resolved_at,
    )


# ===================================================================== #
#  SQL series repository                                                  #
# ===================================================================== #

class SqlSeriesRepository(SeriesRepository):
    """Growth metrics and revenue snapshots in the service database."""

    def __init__(self, db: Session) -> None:
        self._db = db

    # ------------------------------------------------------------------ #
    #  Metric samples                                                      #
    # ------------------------------------------------------------------ #

    def append(self, entity_id: str, sample: MetricSample) -> bool:
        if self._has_sample(entity_id, sample.period_type, sample.period_key):
            logger.debug(
                "Sample %s/%s already stored for %s", sample.period_type.value, sample.period_key, entity_id
            )
            return False

        breakdown = None
        if sample.daily_breakdown is not None:
            breakdown = json.dumps([item.model_dump(mode="json") for item in sample.daily_breakdown])

        row = GrowthMetric(
            startup_id=str(entity_id),
            period_type=sample.period_type.value,
            period_key=sample.period_key,
            window_start=as_naive_utc(sample.window_start),
            window_end=as_naive_utc(sample.window_end),
            new_count=sample.new_count,
            previous_count=sample.previous_count,
            growth_rate_pct=sample.growth_rate_pct,
            growth_multiplier=sample.growth_multiplier,
            surge=sample.surge,
            daily_breakdown_json=breakdown,
        )
        return self._insert(row)

    def latest(self, entity_id: str, period_type: PeriodType, limit: int) -> List[MetricSample]:
        rows = (
            self._db.query(GrowthMetric)
            .filter(
                GrowthMetric.startup_id == str(entity_id),
                GrowthMetric.period_type == PeriodType(period_type).value,
            )
            .order_by(GrowthMetric.window_end.desc())
            .limit(limit)
            .all()
        )
        return [_sample_from_row(row) for row in rows]

    def count_surges(self, entity_id: str, since_days: int, now: Optional[datetime] = None) -> int:
        cutoff = as_naive_utc((now or utc_now()) - timedelta(days=since_days))
        return (
            self._db.query(func.count(GrowthMetric.id))
            .filter(
                GrowthMetric.startup_id == str(entity_id),
                GrowthMetric.surge.is_(True),
                GrowthMetric.window_end >= cutoff,
            )
            .scalar()
            or 0
        )

    def monthly_stats(self, entity_id: str) -> MonthlyStats:
        """Aggregate over the 12 most recent monthly samples."""
        samples = self.latest(entity_id, PeriodType.MONTHLY, _MONTHLY_STATS_WINDOW)
        if not samples:
            return MonthlyStats(total_users=0, avg_monthly_growth=0.0, surge_months=0)

        latest = samples[0]
        return MonthlyStats(
            total_users=latest.new_count + latest.previous_count,
            avg_monthly_growth=sum(s.growth_rate_pct for s in samples) / len(samples),
            surge_months=sum(1 for s in samples if s.surge),
        )

    def growth_trend(self, entity_id: str, months: int = 6) -> List[float]:
        """Monthly user growth rates, oldest first."""
        samples = self.latest(entity_id, PeriodType.MONTHLY, months)
        return [s.growth_rate_pct for s in reversed(samples)]

    # ------------------------------------------------------------------ #
    #  Revenue snapshots                                                   #
    # ------------------------------------------------------------------ #

    def append_revenue_snapshot(self, entity_id: str, snapshot: RevenueSnapshot) -> bool:
        exists = (
            self._db.query(RevenueSnapshotRecord.id)
            .filter(
                RevenueSnapshotRecord.startup_id == str(entity_id),
                RevenueSnapshotRecord.period_key == snapshot.period_key,
            )
            .first()
        )
        if exists:
            return False

        row = RevenueSnapshotRecord(
            startup_id=str(entity_id),
            period_key=snapshot.period_key,
            window_start=as_naive_utc(snapshot.window_start),
            window_end=as_naive_utc(snapshot.window_end),
            current_mrr=snapshot.current_mrr,
            previous_mrr=snapshot.previous_mrr,
            growth_rate_pct=snapshot.growth_rate_pct,
            transaction_count=snapshot.transaction_count,
            customer_count=snapshot.customer_count,
        )
        return self._insert(row)

    def latest_revenue_snapshots(self, entity_id: str, limit: int) -> List[RevenueSnapshot]:
        """Newest first."""
        rows = (
            self._db.query(RevenueSnapshotRecord)
            .filter(RevenueSnapshotRecord.startup_id == str(entity_id))
            .order_by(RevenueSnapshotRecord.window_end.desc())
            .limit(limit)
            .all()
        )
        return [_snapshot_from_row(row) for row in rows]

    def revenue_growth_history(self, entity_id: str) -> List[float]:
        """Every stored revenue growth rate (percent), oldest first."""
        rows = (
            self._db.query(RevenueSnapshotRecord.growth_rate_pct)
            .filter(RevenueSnapshotRecord.startup_id == str(entity_id))
            .order_by(RevenueSnapshotRecord.window_end.asc())
            .all()
        )
        return [row.growth_rate_pct for row in rows]

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _has_sample(self, entity_id: str, period_type: PeriodType, period_key: str) -> bool:
        return (
            self._db.query(GrowthMetric.id)
            .filter(
                GrowthMetric.startup_id == str(entity_id),
                GrowthMetric.period_type == period_type.value,
                GrowthMetric.period_key == period_key,
            )
            .first()
            is not None
        )

    def _insert(self, row) -> bool:
        self._db.add(row)
        try:
            self._db.commit()
        except IntegrityError:
            # Lost a race with a concurrent writer for the same period.
            self._db.rollback()
            return False
        return True


# ===================================================================== #
#  SQL milestone store                                                    #
# ===================================================================== #

class SqlMilestoneStore(MilestoneStore):
    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, entity_id: str) -> Set[str]:
        rows = (
            self._db.query(AchievedMilestone.label)
            .filter(AchievedMilestone.startup_id == str(entity_id))
            .all()
        )
        return {label for (label,) in rows}

    def add(self, entity_id: str, milestones: Iterable[NewMilestone]) -> None:
        achieved = self.get(entity_id)
        for milestone in milestones:
            if milestone.label in achieved:
                continue
            self._db.add(
                AchievedMilestone(
                    startup_id=str(entity_id),
                    label=milestone.label,
                    revenue=milestone.revenue,
                    achieved_at=as_naive_utc(milestone.achieved_at),
                )
            )
            achieved.add(milestone.label)
        try:
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            logger.warning("Concurrent milestone write for %s; keeping stored labels", entity_id)


# ===================================================================== #
#  Evaluation log                                                         #
# ===================================================================== #

class SqlEvaluationLog:
    """Append-only trigger evaluation history."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def record(self, evaluation: TriggerEvaluation) -> None:
        self._db.add(
            TriggerEvaluationRecord(
                startup_id=evaluation.entity_id,
                evaluation_date=as_naive_utc(evaluation.evaluation_date),
                avg_monthly_growth_rate=evaluation.avg_monthly_growth_rate,
                sustained_growth=evaluation.sustained_growth,
                recommendation=evaluation.recommendation.value,
                reasoning=evaluation.reasoning,
                growth_rates_json=json.dumps(evaluation.growth_rates),
                surge_count=evaluation.surge_count,
                current_period_users=evaluation.current_period_users,
                previous_period_users=evaluation.previous_period_users,
            )
        )
        self._db.commit()

    def latest(self, entity_id: str) -> Optional[TriggerEvaluation]:
        row = (
            self._db.query(TriggerEvaluationRecord)
            .filter(TriggerEvaluationRecord.startup_id == str(entity_id))
            .order_by(TriggerEvaluationRecord.evaluation_date.desc())
            .first()
        )
        return _evaluation_from_row(row) if row else None


# ===================================================================== #
#  Event log                                                              #
# ===================================================================== #

class SqlEventLog:
    """Monitoring events; only the notified / resolved stamps ever change."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def record(
        self,
        entity_id: str,
        event_type: EventType,
        event_data: Dict[str, Any],
        trigger_value: float,
        threshold_value: float,
        funding_eligible: bool = False,
        funding_amount: float = 0.0,
        severity: str = "MEDIUM",
        priority: str = "MEDIUM",
    ) -> MonitoringEvent:
        row = MonitoringEvent(
            startup_id=str(entity_id),
            event_type=EventType(event_type).value,
            event_data_json=json.dumps(event_data, default=str),
            trigger_value=float(trigger_value),
            threshold_value=float(threshold_value),
            funding_eligible=funding_eligible,
            funding_amount=float(funding_amount),
            severity=severity,
            priority=priority,
        )
        self._db.add(row)
        self._db.commit()
        self._db.refresh(row)
        logger.info(
            "Event %s for %s (trigger=%.2f threshold=%.2f)",
            row.event_type,
            entity_id,
            row.trigger_value,
            row.threshold_value,
        )
        return row

    def list(self, entity_id: Optional[str] = None, limit: int = 50) -> List[MonitoringEvent]:
        query = self._db.query(MonitoringEvent)
        if entity_id is not None:
            query = query.filter(MonitoringEvent.startup_id == str(entity_id))
        return query.order_by(MonitoringEvent.created_at.desc()).limit(limit).all()

    def mark_notified(self, event_id: str, now: Optional[datetime] = None) -> MonitoringEvent:
        row = self._get(event_id)
        if row.notified_at is None:
            row.notified_at = as_naive_utc(now or utc_now())
            self._db.commit()
            self._db.refresh(row)
        return row

    def resolve(self, event_id: str, now: Optional[datetime] = None) -> MonitoringEvent:
        row = self._get(event_id)
        if row.resolved_at is None:
            row.resolved_at = as_naive_utc(now or utc_now())
            self._db.commit()
            self._db.refresh(row)
        return row

    def _get(self, event_id: str) -> MonitoringEvent:
        row = self._db.get(MonitoringEvent, str(event_id))
        if row is None:
            raise EntityNotFound(str(event_id), kind="Event")
        return row
