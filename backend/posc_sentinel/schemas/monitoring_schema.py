from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .evaluation_schema import TriggerEvaluation
from .milestone_schema import NewMilestone
from .score_schema import EligibilityScore
from .streak_schema import GrowthStreakState


class CheckFailure(BaseModel):
    stage: str = Field(..., description="signups | revenue")
    resource: str
    message: str


class CheckOutcome(BaseModel):
    """Result of one per-startup monitoring check.

    A failed stage is listed in ``failures``; the stages that did not
    depend on it still ran.
    """

    entity_id: str
    checked_at: datetime
    appended_periods: List[str] = Field(default_factory=list)
    new_milestones: List[NewMilestone] = Field(default_factory=list)
    streak: Optional[GrowthStreakState] = None
    eligibility: Optional[EligibilityScore] = None
    recommended_funding: Optional[int] = None
    evaluation: Optional[TriggerEvaluation] = None
    events: List[str] = Field(default_factory=list)
    failures: List[CheckFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class SchedulerStatus(BaseModel):
    is_running: bool
    interval_seconds: int
    last_check: Optional[datetime] = None
    entities_checked: int = 0
    last_failures: int = 0
