import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, UniqueConstraint

from ..database import Base
from .startup import GUID


class AchievedMilestone(Base):
    __tablename__ = "achieved_milestones"
    __table_args__ = (
        UniqueConstraint("startup_id", "label", name="uq_milestone_label"),
    )

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    label = Column(String(32), nullable=False)
    revenue = Column(Float, nullable=False)
    achieved_at = Column(DateTime, nullable=False, default=datetime.utcnow)
