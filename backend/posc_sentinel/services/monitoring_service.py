"""Per-startup monitoring check.

Stage order for one check:

1. signups   → weekly + monthly ``MetricSample`` appended to the series
2. revenue   → ``RevenueSnapshot`` appended to the revenue series
3. milestones, streak, score, funding estimate (need stage 2)
4. alerts    → ``MonitoringEvent`` rows
5. trigger   → ``TriggerEvaluation`` over stored monthly user samples

Rules
-----
- A ``DataSourceUnavailable`` in stage 1 or 2 is recorded in the outcome;
  stages that do not depend on the failed one still run
- Checks of the same startup are serialized by a per-startup lock
- ``run_cycle`` never lets one startup's failure stop the pass
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from .. import constants
from ..config import MonitoringSettings, get_settings
from ..errors import DataSourceUnavailable, EntityNotFound
from ..models.startup import Startup
from ..schemas.evaluation_schema import Recommendation
from ..schemas.event_schema import EventType
from ..schemas.metric_schema import PeriodType, RevenueSnapshot
from ..schemas.monitoring_schema import CheckFailure, CheckOutcome
from ..schemas.score_schema import RiskFactor
from .clock import Clock, utc_now
from .eligibility_scorer import score_funding_eligibility
from .funding_estimator import estimate_funding_amount
from .metric_builder import collect_metric_sample
from .milestone_tracker import DEFAULT_LADDER, MilestoneLadder, detect_new_milestones
from .repositories import SqlEvaluationLog, SqlEventLog, SqlMilestoneStore, SqlSeriesRepository
from .revenue_events import detect_revenue_event
from .revenue_snapshot import collect_revenue_snapshot
from .sources import RawEventSource, RawTransactionSource
from .streak_analyzer import analyze_streaks
from .trigger_evaluator import evaluate_trigger

logger = logging.getLogger(__name__)


class MonitoringService:
    """Runs the monitoring pipeline for one or all startups.

    Parameters
    ----------
    session_factory:
        Callable returning a new SQLAlchemy ``Session``.
    event_source:
        Signup records for user growth samples.
    transaction_source:
        Payment transactions; ``None`` when no processor is configured,
        in which case the revenue stage fails with ``DataSourceUnavailable``.
    settings:
        Alert thresholds; defaults to ``get_settings()``.
    clock:
        Returns the current aware UTC instant.
    ladder:
        Milestone ladder used by the tracker.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        event_source: RawEventSource,
        transaction_source: Optional[RawTransactionSource] = None,
        settings: Optional[MonitoringSettings] = None,
        clock: Clock = utc_now,
        ladder: MilestoneLadder = DEFAULT_LADDER,
    ) -> None:
        self._session_factory = session_factory
        self._event_source = event_source
        self._transaction_source = transaction_source
        self._settings = settings or get_settings()
        self._clock = clock
        self._ladder = ladder
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    #  Public                                                              #
    # ------------------------------------------------------------------ #

    def check_entity(self, startup_id: str) -> CheckOutcome:
        """Run one full check for *startup_id*.

        Raises
        ------
        EntityNotFound
            If the startup does not exist.
        """
        startup_id = str(startup_id)
        with self._lock_for(startup_id):
            db = self._session_factory()
            try:
                startup = db.get(Startup, startup_id)
                if startup is None:
                    raise EntityNotFound(startup_id)
                risk_factors = [RiskFactor.model_validate(r) for r in startup.risk_factors]
                outcome = self._run_stages(db, startup_id, risk_factors)
                if outcome.eligibility is not None:
                    startup.funding_eligibility_score = float(outcome.eligibility.score)
                    db.commit()
            finally:
                db.close()

        logger.info(
            "Checked %s: appended=%s milestones=%d events=%s failures=%d",
            startup_id,
            outcome.appended_periods,
            len(outcome.new_milestones),
            outcome.events,
            len(outcome.failures),
        )
        return outcome

    def run_cycle(self) -> List[CheckOutcome]:
        """Check every active, monitoring-enabled startup."""
        db = self._session_factory()
        try:
            ids = [
                str(row.id)
                for row in db.query(Startup.id)
                .filter(Startup.is_active.is_(True), Startup.monitoring_enabled.is_(True))
                .all()
            ]
        finally:
            db.close()

        outcomes: List[CheckOutcome] = []
        for startup_id in ids:
            try:
                outcomes.append(self.check_entity(startup_id))
            except Exception:
                logger.exception("Monitoring check crashed for %s", startup_id)
        logger.info("Monitoring cycle finished: %d/%d startups checked", len(outcomes), len(ids))
        return outcomes

    def close(self) -> None:
        """Release the data sources' connections."""
        self._event_source.close()
        if self._transaction_source is not None:
            self._transaction_source.close()

    # ------------------------------------------------------------------ #
    #  Stages                                                              #
    # ------------------------------------------------------------------ #

    def _run_stages(self, db: Session, startup_id: str, risk_factors: List[RiskFactor]) -> CheckOutcome:
        now = self._clock()
        series = SqlSeriesRepository(db)
        milestones = SqlMilestoneStore(db)
        events = SqlEventLog(db)
        outcome = CheckOutcome(entity_id=startup_id, checked_at=now)

        # 1. signups
        new_monthly_sample = False
        try:
            for period_type in (PeriodType.WEEKLY, PeriodType.MONTHLY):
                sample = collect_metric_sample(self._event_source, startup_id, period_type, now)
                if series.append(startup_id, sample):
                    outcome.appended_periods.append(f"{period_type.value}:{sample.period_key}")
                    if period_type is PeriodType.MONTHLY:
                        new_monthly_sample = True
        except DataSourceUnavailable as exc:
            self._record_failure(outcome, "signups", exc)

        # 2. revenue
        snapshot: Optional[RevenueSnapshot] = None
        new_revenue_period = False
        try:
            if self._transaction_source is None:
                raise DataSourceUnavailable("stripe:payment_intents", "no transaction source configured")
            snapshot = collect_revenue_snapshot(self._transaction_source, startup_id, now)
            new_revenue_period = series.append_revenue_snapshot(startup_id, snapshot)
            if new_revenue_period:
                outcome.appended_periods.append(f"revenue:{snapshot.period_key}")
        except DataSourceUnavailable as exc:
            self._record_failure(outcome, "revenue", exc)

        # 3. tracker → analyzer → scorer → estimator
        if snapshot is not None:
            achieved = milestones.get(startup_id)
            outcome.new_milestones = detect_new_milestones(
                snapshot.current_mrr, achieved, self._ladder, now
            )
            milestones.add(startup_id, outcome.new_milestones)

            revenue_rates = series.revenue_growth_history(startup_id)
            outcome.streak = analyze_streaks(revenue_rates)
            outcome.eligibility = score_funding_eligibility(
                snapshot.growth_rate_pct,
                outcome.streak.current_streak,
                len(achieved) + len(outcome.new_milestones),
                risk_factors,
            )
            outcome.recommended_funding = estimate_funding_amount(
                snapshot.growth_rate_pct / 100.0, snapshot.current_mrr
            )

            # 4. alerts; revenue alerts fire once per revenue period
            self._emit_milestone_alerts(events, outcome)
            if new_revenue_period:
                self._emit_revenue_alerts(events, outcome, snapshot, revenue_rates)

        # 5. trigger evaluation, independent of the revenue chain
        monthly = series.latest(startup_id, PeriodType.MONTHLY, constants.MONTHS_TO_EVALUATE)
        surge_count = series.count_surges(startup_id, constants.SURGE_LOOKBACK_DAYS, now)
        outcome.evaluation = evaluate_trigger(startup_id, monthly, surge_count, now=now)
        SqlEvaluationLog(db).record(outcome.evaluation)
        if new_monthly_sample and outcome.evaluation.recommendation is Recommendation.TRIGGER:
            events.record(
                startup_id,
                EventType.POSC_TRIGGER,
                outcome.evaluation.model_dump(mode="json"),
                trigger_value=outcome.evaluation.avg_monthly_growth_rate,
                threshold_value=constants.TRIGGER_AVG_GROWTH_PCT,
                funding_eligible=True,
                severity="CRITICAL",
                priority="URGENT",
            )
            outcome.events.append(EventType.POSC_TRIGGER.value)

        return outcome

    def _emit_milestone_alerts(self, events: SqlEventLog, outcome: CheckOutcome) -> None:
        for milestone in outcome.new_milestones:
            events.record(
                outcome.entity_id,
                EventType.SALES_MILESTONE,
                {"milestone": milestone.label, "revenue": milestone.revenue},
                trigger_value=milestone.revenue,
                threshold_value=self._ladder.threshold_for(milestone.label),
                severity="HIGH",
                priority="HIGH",
            )
            outcome.events.append(EventType.SALES_MILESTONE.value)

    def _emit_revenue_alerts(
        self,
        events: SqlEventLog,
        outcome: CheckOutcome,
        snapshot: RevenueSnapshot,
        revenue_rates: List[float],
    ) -> None:
        entity_id = outcome.entity_id
        growth_fraction = snapshot.growth_rate_pct / 100.0
        if growth_fraction >= self._settings.growth_rate_threshold:
            events.record(
                entity_id,
                EventType.GROWTH_THRESHOLD,
                {
                    "growth_rate": growth_fraction,
                    "current_mrr": snapshot.current_mrr,
                    "previous_mrr": snapshot.previous_mrr,
                },
                trigger_value=growth_fraction,
                threshold_value=self._settings.growth_rate_threshold,
            )
            outcome.events.append(EventType.GROWTH_THRESHOLD.value)

        recent = revenue_rates[-constants.SUSTAINED_ALERT_MONTHS:]
        if len(recent) == constants.SUSTAINED_ALERT_MONTHS and all(
            rate > constants.SUSTAINED_ALERT_MIN_GROWTH_PCT for rate in recent
        ):
            events.record(
                entity_id,
                EventType.SUSTAINED_GROWTH,
                {"growth_rates": recent},
                trigger_value=min(recent),
                threshold_value=constants.SUSTAINED_ALERT_MIN_GROWTH_PCT,
                severity="HIGH",
                priority="HIGH",
            )
            outcome.events.append(EventType.SUSTAINED_GROWTH.value)

        score = outcome.eligibility.score
        if score >= self._settings.funding_eligibility_threshold:
            events.record(
                entity_id,
                EventType.FUNDING_ELIGIBLE,
                {
                    "score": outcome.eligibility.model_dump(),
                    "recommended_amount": outcome.recommended_funding,
                },
                trigger_value=score,
                threshold_value=self._settings.funding_eligibility_threshold,
                funding_eligible=True,
                funding_amount=max(outcome.recommended_funding or 0, 0),
                severity="HIGH",
                priority="URGENT",
            )
            outcome.events.append(EventType.FUNDING_ELIGIBLE.value)

        revenue_event = detect_revenue_event(snapshot)
        if revenue_event is not None:
            events.record(
                entity_id,
                EventType.REVENUE_EVENT,
                revenue_event.model_dump(mode="json"),
                trigger_value=snapshot.current_mrr,
                threshold_value=snapshot.previous_mrr,
                funding_eligible=True,
                funding_amount=revenue_event.funding_recommendation,
                severity="HIGH",
                priority="HIGH",
            )
            outcome.events.append(EventType.REVENUE_EVENT.value)

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _lock_for(self, startup_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(startup_id)
            if lock is None:
                lock = self._locks[startup_id] = threading.Lock()
            return lock

    @staticmethod
    def _record_failure(outcome: CheckOutcome, stage: str, exc: DataSourceUnavailable) -> None:
        logger.warning("%s stage failed for %s: %s", stage, outcome.entity_id, exc)
        outcome.failures.append(CheckFailure(stage=stage, resource=exc.resource, message=str(exc)))
