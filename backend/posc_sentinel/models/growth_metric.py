import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint

from ..database import Base
from .startup import GUID


class GrowthMetric(Base):
    """One immutable MetricSample; (startup, period type, period key) is unique."""

    __tablename__ = "growth_metrics"
    __table_args__ = (
        UniqueConstraint("startup_id", "period_type", "period_key", name="uq_growth_metric_period"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    period_type = Column(String(16), nullable=False)  # weekly | monthly
    period_key = Column(String(16), nullable=False)
    window_start = Column(DateTime, nullable=False)
    window_end = Column(DateTime, nullable=False)

    new_count = Column(Integer, nullable=False)
    previous_count = Column(Integer, nullable=False)
    growth_rate_pct = Column(Float, nullable=False)
    growth_multiplier = Column(Float, nullable=False)
    surge = Column(Boolean, nullable=False, default=False, index=True)
    daily_breakdown_json = Column(Text, nullable=True)  # JSON string, weekly only

    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class RevenueSnapshotRecord(Base):
    __tablename__ = "revenue_snapshots"
    __table_args__ = (
        UniqueConstraint("startup_id", "period_key", name="uq_revenue_snapshot_period"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    period_key = Column(String(16), nullable=False)
    window_start = Column(DateTime, nullable=False)
    window_end = Column(DateTime, nullable=False)

    current_mrr = Column(Float, nullable=False)
    previous_mrr = Column(Float, nullable=False)
    growth_rate_pct = Column(Float, nullable=False)
    transaction_count = Column(Integer, nullable=False)
    customer_count = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
