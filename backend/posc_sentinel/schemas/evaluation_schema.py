from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Recommendation(str, Enum):
    TRIGGER = "trigger"
    MONITOR = "monitor"
    NO_ACTION = "no_action"


class TriggerEvaluation(BaseModel):
    """Point-in-time classification of a startup's trajectory.

    Append-only audit record: carries the raw inputs (growth rates newest
    first, surge count) that drove the recommendation.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    evaluation_date: datetime
    avg_monthly_growth_rate: float
    sustained_growth: bool
    recommendation: Recommendation
    reasoning: str = Field(..., min_length=1)
    growth_rates: List[float] = Field(default_factory=list, description="Growth rates evaluated, newest first")
    surge_count: int = Field(..., ge=0)
    current_period_users: Optional[int] = None
    previous_period_users: Optional[int] = None
