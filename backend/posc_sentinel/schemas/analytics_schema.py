from typing import List, Optional

from pydantic import BaseModel, Field

from .metric_schema import MonthlyStats, RevenueSnapshot


class AnalyticsSummary(BaseModel):
    """Dashboard-style roll-up of a startup's stored series."""

    startup_id: str
    stats: MonthlyStats
    growth_trend: List[float] = Field(default_factory=list, description="Monthly user growth, oldest first")
    user_trend: str = Field(..., description="INCREASING | DECREASING | STABLE")
    latest_revenue: Optional[RevenueSnapshot] = None
    revenue_trend: str = Field(..., description="INCREASING | DECREASING | STABLE")
    achieved_milestones: List[str] = Field(default_factory=list)
    funding_eligibility_score: Optional[float] = None
