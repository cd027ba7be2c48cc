import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator, CHAR


from ..database import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses CHAR(36) to store UUIDs as strings, compatible with all backends
    including SQLite.
    """

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


class Startup(Base):
    __tablename__ = "startups"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    company = Column(String, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    monitoring_enabled = Column(Boolean, default=True, nullable=False)

    # Raw-data collaborators. NULL means "source not configured" and the
    # corresponding check fails with DataSourceUnavailable.
    signup_db_url = Column(Text, nullable=True)
    signup_table = Column(String(255), nullable=True)
    signup_date_column = Column(String(255), nullable=True)
    stripe_account_id = Column(String(255), nullable=True)

    # Last-write-wins cache of the latest eligibility score
    funding_eligibility_score = Column(Float, nullable=True, default=None)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    risk_factors = relationship(
        "RiskFactorRecord",
        back_populates="startup",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class RiskFactorRecord(Base):
    __tablename__ = "risk_factors"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    startup_id = Column(GUID(), ForeignKey("startups.id"), nullable=False, index=True)
    factor = Column(String(255), nullable=False)
    severity = Column(String(16), nullable=False)  # LOW | MEDIUM | HIGH | CRITICAL
    description = Column(Text, nullable=True)
    impact = Column(Float, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    startup = relationship("Startup", back_populates="risk_factors")
