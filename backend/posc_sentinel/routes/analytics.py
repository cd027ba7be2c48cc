"""Read-side analytics over the stored series, plus ad-hoc evaluation."""

from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import constants
from ..database import get_db
from ..errors import InvariantViolation
from ..schemas.analytics_schema import AnalyticsSummary
from ..schemas.evaluation_schema import TriggerEvaluation
from ..schemas.funding_schema import FundingRecommendation
from ..schemas.metric_schema import MetricSample, PeriodType
from ..services.funding_estimator import recommend_funding
from ..services.repositories import SqlEvaluationLog, SqlMilestoneStore, SqlSeriesRepository
from ..services.revenue_events import classify_trend
from ..services.trigger_evaluator import evaluate_trigger
from .startups import get_startup_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get(
    "/funding-recommendation",
    response_model=FundingRecommendation,
    summary="Estimate a funding amount",
)
def funding_recommendation(
    growth_rate: float = Query(..., description="Growth as a fraction, e.g. 0.25"),
    revenue: float = Query(..., ge=0.0, description="Current MRR"),
) -> FundingRecommendation:
    return recommend_funding(growth_rate, revenue)


@router.get("/{startup_id}/metrics", response_model=List[MetricSample], summary="Stored metric samples")
def list_metrics(
    startup_id: UUID,
    period_type: PeriodType = Query(default=PeriodType.WEEKLY),
    limit: int = Query(default=12, ge=1, le=104),
    db: Session = Depends(get_db),
) -> List[MetricSample]:
    get_startup_or_404(db, startup_id)
    return SqlSeriesRepository(db).latest(str(startup_id), period_type, limit)


@router.get("/{startup_id}/stats", response_model=AnalyticsSummary, summary="Growth statistics")
def startup_stats(startup_id: UUID, db: Session = Depends(get_db)) -> AnalyticsSummary:
    startup = get_startup_or_404(db, startup_id)
    series = SqlSeriesRepository(db)
    entity_id = str(startup_id)

    monthly = series.latest(entity_id, PeriodType.MONTHLY, 1)
    revenue = series.latest_revenue_snapshots(entity_id, 1)
    latest_revenue = revenue[0] if revenue else None

    return AnalyticsSummary(
        startup_id=entity_id,
        stats=series.monthly_stats(entity_id),
        growth_trend=series.growth_trend(entity_id),
        user_trend=classify_trend(monthly[0].new_count, monthly[0].previous_count) if monthly else "STABLE",
        latest_revenue=latest_revenue,
        revenue_trend=(
            classify_trend(latest_revenue.current_mrr, latest_revenue.previous_mrr)
            if latest_revenue
            else "STABLE"
        ),
        achieved_milestones=sorted(SqlMilestoneStore(db).get(entity_id)),
        funding_eligibility_score=startup.funding_eligibility_score,
    )


@router.post("/{startup_id}/evaluate", response_model=TriggerEvaluation, summary="Evaluate PoSC trigger")
def evaluate_startup(
    startup_id: UUID,
    months: int = Query(default=constants.MONTHS_TO_EVALUATE, ge=1, le=12),
    db: Session = Depends(get_db),
) -> TriggerEvaluation:
    """Evaluate over stored monthly samples and append to the audit log."""
    get_startup_or_404(db, startup_id)
    entity_id = str(startup_id)
    series = SqlSeriesRepository(db)

    try:
        evaluation = evaluate_trigger(
            entity_id,
            series.latest(entity_id, PeriodType.MONTHLY, months),
            series.count_surges(entity_id, constants.SURGE_LOOKBACK_DAYS),
            months_to_evaluate=months,
        )
    except InvariantViolation as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    SqlEvaluationLog(db).record(evaluation)
    logger.info("Evaluated %s: %s", entity_id, evaluation.recommendation.value)
    return evaluation


@router.get(
    "/{startup_id}/evaluations/latest",
    response_model=TriggerEvaluation,
    summary="Most recent trigger evaluation",
)
def latest_evaluation(startup_id: UUID, db: Session = Depends(get_db)) -> TriggerEvaluation:
    get_startup_or_404(db, startup_id)
    evaluation = SqlEvaluationLog(db).latest(str(startup_id))
    if evaluation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No evaluations recorded for this startup",
        )
    return evaluation
