from pydantic import BaseModel, Field


class FundingRecommendation(BaseModel):
    """Ad-hoc funding amount recommendation."""

    growth_rate: float = Field(..., description="Growth rate as a fraction (0.25 == 25%)")
    current_revenue: float = Field(..., ge=0.0)
    growth_multiplier: float = Field(..., le=3.0)
    revenue_multiplier: float = Field(..., ge=0.0, le=2.0)
    recommended_amount: int = Field(..., description="Negative when growth is negative")
