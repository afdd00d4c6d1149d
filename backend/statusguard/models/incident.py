"""Incident models - outage records and their update timeline."""
import uuid
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_utils import utcnow
from .enums import IncidentSeverity, IncidentStatus


# Junction table linking incidents to the services they affect
incident_affected_services = Table(
    "incident_affected_services",
    Base.metadata,
    Column("incident_id", String(36), ForeignKey("incidents.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", String(36), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class Incident(Base):
    """A tracked outage or degradation event."""

    __tablename__ = "incidents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    status_page_id = Column(String(36), ForeignKey("status_pages.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default=IncidentStatus.INVESTIGATING.value)
    severity = Column(String, nullable=False, default=IncidentSeverity.MINOR.value)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)

    # Relationships
    status_page = relationship("StatusPage", back_populates="incidents")
    services = relationship("Service", secondary=incident_affected_services)
    updates = relationship(
        "IncidentUpdate",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentUpdate.id",
    )


class IncidentUpdate(Base):
    """Timeline entry appended when an incident is created or changes state."""

    __tablename__ = "incident_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    incident_id = Column(String(36), ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False)
    status = Column(String, nullable=False)
    message = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationship
    incident = relationship("Incident", back_populates="updates")
