"""CheckResult model - append-only probe history."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow


class CheckResult(Base):
    """Outcome of one probe. Rows are never updated."""

    __tablename__ = "checks"
    __table_args__ = (
        Index("ix_checks_service_checked_at", "service_id", "checked_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    checked_at = Column(DateTime, nullable=False, default=utcnow)  # probe completion time
    latency_ms = Column(Integer, nullable=False, default=0)
    is_up = Column(Boolean, nullable=False)
    status_code = Column(Integer, nullable=True)  # HTTP only
    error = Column(String, nullable=True)

    # Relationships
    service = relationship("Service", back_populates="checks")
