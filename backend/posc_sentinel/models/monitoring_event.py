import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text

from ..database import Base
from .startup import GUID


class MonitoringEvent(Base):
    __tablename__ = "monitoring_events"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    event_type = Column(String(32), nullable=False, index=True)
    event_data_json = Column(Text, nullable=False)  # JSON string
    trigger_value = Column(Float, nullable=False)
    threshold_value = Column(Float, nullable=False)

    funding_eligible = Column(Boolean, nullable=False, default=False, index=True)
    funding_amount = Column(Float, nullable=False, default=0.0)
    severity = Column(String(16), nullable=False, default="MEDIUM")  # LOW | MEDIUM | HIGH | CRITICAL
    priority = Column(String(16), nullable=False, default="MEDIUM")  # LOW | MEDIUM | HIGH | URGENT

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    notified_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
