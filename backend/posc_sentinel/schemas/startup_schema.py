from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .score_schema import RiskFactor


class StartupCreate(BaseModel):
    """Registration payload for a monitored startup."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    company: str = Field(..., min_length=1, max_length=255)
    monitoring_enabled: bool = True
    signup_db_url: Optional[str] = None
    signup_table: Optional[str] = Field(default=None, max_length=255)
    signup_date_column: Optional[str] = Field(default=None, max_length=255)
    stripe_account_id: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def email_has_at(cls, v: str) -> str:
        stripped = v.strip().lower()
        if "@" not in stripped:
            raise ValueError("email must contain '@'")
        return stripped


class StartupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    company: str
    is_active: bool
    monitoring_enabled: bool
    funding_eligibility_score: Optional[float] = None
    created_at: datetime
    risk_factors: List[RiskFactor] = Field(default_factory=list)
