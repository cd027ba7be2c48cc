from .metric_builder import build_metric_sample, collect_metric_sample, compute_growth_multiplier, compute_growth_rate
from .revenue_snapshot import build_revenue_snapshot, calculate_mrr, collect_revenue_snapshot
from .milestone_tracker import DEFAULT_LADDER, MilestoneLadder, detect_new_milestones
from .streak_analyzer import analyze_streaks
from .eligibility_scorer import score_funding_eligibility
from .funding_estimator import estimate_funding_amount, recommend_funding
from .trigger_evaluator import evaluate_trigger
from .revenue_events import classify_trend, detect_revenue_event

__all__ = [
    "compute_growth_rate",
    "compute_growth_multiplier",
    "build_metric_sample",
    "collect_metric_sample",
    "build_revenue_snapshot",
    "collect_revenue_snapshot",
    "calculate_mrr",
    "MilestoneLadder",
    "DEFAULT_LADDER",
    "detect_new_milestones",
    "analyze_streaks",
    "score_funding_eligibility",
    "estimate_funding_amount",
    "recommend_funding",
    "evaluate_trigger",
    "detect_revenue_event",
    "classify_trend",
]
