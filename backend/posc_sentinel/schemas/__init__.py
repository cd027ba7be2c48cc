# Schemas package
from .records_schema import PaymentTransaction, SignupEvent
from .metric_schema import DailyCount, MetricSample, MonthlyStats, PeriodType, RevenueSnapshot
from .milestone_schema import NewMilestone
from .streak_schema import GrowthStreakState
from .score_schema import EligibilityScore, RiskFactor, RiskSeverity
from .evaluation_schema import Recommendation, TriggerEvaluation
from .funding_schema import FundingRecommendation
from .event_schema import EventType, MonitoringEventOut, RevenueEvent, RevenueEventType
from .monitoring_schema import CheckFailure, CheckOutcome, SchedulerStatus
from .analytics_schema import AnalyticsSummary

__all__ = [
    "SignupEvent",
    "PaymentTransaction",
    "PeriodType",
    "DailyCount",
    "MetricSample",
    "RevenueSnapshot",
    "MonthlyStats",
    "NewMilestone",
    "GrowthStreakState",
    "RiskSeverity",
    "RiskFactor",
    "EligibilityScore",
    "Recommendation",
    "TriggerEvaluation",
    "FundingRecommendation",
    "EventType",
    "RevenueEvent",
    "RevenueEventType",
    "MonitoringEventOut",
    "CheckFailure",
    "CheckOutcome",
    "SchedulerStatus",
    "AnalyticsSummary",
]
