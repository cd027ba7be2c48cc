from .evaluation import TriggerEvaluationRecord
from .growth_metric import GrowthMetric, RevenueSnapshotRecord
from .milestone import AchievedMilestone
from .monitoring_event import MonitoringEvent
from .startup import RiskFactorRecord, Startup

__all__ = [
    "AchievedMilestone",
    "GrowthMetric",
    "MonitoringEvent",
    "RevenueSnapshotRecord",
    "RiskFactorRecord",
    "Startup",
    "TriggerEvaluationRecord",
]
