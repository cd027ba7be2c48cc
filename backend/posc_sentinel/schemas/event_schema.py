from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    SALES_MILESTONE = "SALES_MILESTONE"
    GROWTH_THRESHOLD = "GROWTH_THRESHOLD"
    SUSTAINED_GROWTH = "SUSTAINED_GROWTH"
    FUNDING_ELIGIBLE = "FUNDING_ELIGIBLE"
    REVENUE_EVENT = "REVENUE_EVENT"
    POSC_TRIGGER = "POSC_TRIGGER"


class RevenueEventType(str, Enum):
    REVENUE_GROWTH = "revenue_growth"
    MRR_MILESTONE = "mrr_milestone"
    TRANSACTION_VOLUME = "transaction_volume"


class RevenueEvent(BaseModel):
    """Outcome of the revenue event detector."""

    model_config = ConfigDict(frozen=True)

    type: RevenueEventType
    rationale: str
    funding_recommendation: int = Field(..., ge=0)


class MonitoringEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    startup_id: UUID
    event_type: EventType
    event_data: Dict[str, Any]
    trigger_value: float
    threshold_value: float
    funding_eligible: bool
    funding_amount: float
    severity: str
    priority: str
    created_at: datetime
    notified_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
