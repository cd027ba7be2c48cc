import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from ..database import Base
from .startup import GUID


class TriggerEvaluationRecord(Base):
    """Append-only audit log of trigger evaluations."""

    __tablename__ = "trigger_evaluations"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    evaluation_date = Column(DateTime, nullable=False, index=True)
    avg_monthly_growth_rate = Column(Float, nullable=False)
    sustained_growth = Column(Boolean, nullable=False)
    recommendation = Column(String(16), nullable=False)  # trigger | monitor | no_action
    reasoning = Column(Text, nullable=False)
    growth_rates_json = Column(Text, nullable=False)  # JSON list, newest first
    surge_count = Column(Integer, nullable=False)
    current_period_users = Column(Integer, nullable=True)
    previous_period_users = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
