"""Service model - endpoints probed by the scheduler."""
import uuid
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow
from .enums import ServiceStatus


class Service(Base):
    """A monitored endpoint - HTTP, HTTPS or TCP."""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    status_page_id = Column(String(36), ForeignKey("status_pages.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    endpoint = Column(String, nullable=False)  # URL or host:port
    protocol = Column(String, nullable=False)  # HTTP, HTTPS, TCP, gRPC
    check_interval_seconds = Column(Integer, default=60)  # stored, not enforced per service
    timeout_ms = Column(Integer, default=5000)
    expected_status_code = Column(Integer, default=200)  # HTTP only
    status = Column(String, nullable=False, default=ServiceStatus.OPERATIONAL.value)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    status_page = relationship("StatusPage", back_populates="services")
    checks = relationship("CheckResult", back_populates="service", cascade="all, delete-orphan")
