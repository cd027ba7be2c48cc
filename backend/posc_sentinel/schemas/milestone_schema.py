from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NewMilestone(BaseModel):
    """A ladder label crossed for the first time."""

    model_config = ConfigDict(frozen=True)

    label: str
    achieved_at: datetime
    revenue: float = Field(..., ge=0.0, description="Revenue at the moment of crossing")
