from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RiskSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskFactor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    factor: str = Field(..., min_length=1, max_length=255)
    severity: RiskSeverity
    description: Optional[str] = None
    impact: Optional[float] = None


class EligibilityScore(BaseModel):
    """Banded funding-eligibility score and its components.

    Produced by the Eligibility Scorer.  ``score`` is
    ``clamp(growth + streak + milestone - risk_deduction, 0, 100)``.
    """

    growth_points: int = Field(..., ge=0, le=40, description="Revenue-growth band")
    streak_points: int = Field(..., ge=0, le=30, description="Sustained-streak band")
    milestone_points: int = Field(..., ge=0, le=20, description="Milestone band")
    risk_deduction: int = Field(..., ge=0, le=10, description="min(10, 3 * high-severity risks)")
    score: int = Field(..., ge=0, le=100)
