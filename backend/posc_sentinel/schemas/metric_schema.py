import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PeriodType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class DailyCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    count: int = Field(..., ge=0)


class MetricSample(BaseModel):
    """One growth observation for one startup over one period.

    Produced by the Metric Sample Builder.  Immutable after creation and
    appended to the startup's ordered history.  ``entity_id`` +
    ``period_type`` + ``period_key`` is the natural dedup key.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    period_type: PeriodType
    period_key: str = Field(..., description="ISO year-week (2025-W04) or year-month (2025-01)")
    window_start: dt.datetime
    window_end: dt.datetime
    new_count: int = Field(..., ge=0, description="Records in [window_start, window_end)")
    previous_count: int = Field(..., ge=0, description="Records in the equal-length window before")
    growth_rate_pct: float = Field(
        ...,
        description="(new - previous) / previous * 100, 0 when previous == 0",
    )
    growth_multiplier: float = Field(
        ...,
        ge=0.0,
        description="new / previous, 0 when previous == 0",
    )
    surge: bool = Field(..., description="growth_multiplier > 1.5")
    daily_breakdown: Optional[List[DailyCount]] = Field(
        default=None,
        description="Per-date counts of the current window (weekly samples only)",
    )


class RevenueSnapshot(BaseModel):
    """Money-denominated metrics for one startup over one monthly window.

    MRR values are in major currency units.
    """

    model_config = ConfigDict(frozen=True)

    entity_id: str
    period_key: str
    window_start: dt.datetime
    window_end: dt.datetime
    current_mrr: float = Field(..., ge=0.0)
    previous_mrr: float = Field(..., ge=0.0)
    growth_rate_pct: float = Field(
        ...,
        description="(current - previous) / previous * 100, 0 when previous == 0",
    )
    transaction_count: int = Field(..., ge=0)
    customer_count: int = Field(..., ge=0, description="Distinct paying customers in the current window")


class MonthlyStats(BaseModel):
    total_users: int = Field(..., ge=0)
    avg_monthly_growth: float
    surge_months: int = Field(..., ge=0)
