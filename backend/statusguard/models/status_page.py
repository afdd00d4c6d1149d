"""StatusPage model - public page that groups services and incidents."""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow


class StatusPage(Base):
    """A status page owning a set of services and their incidents."""

    __tablename__ = "status_pages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    services = relationship("Service", back_populates="status_page", cascade="all, delete-orphan")
    incidents = relationship("Incident", back_populates="status_page", cascade="all, delete-orphan")
