"""Database models."""
from .enums import IncidentSeverity, IncidentStatus, Protocol, ServiceStatus
from .status_page import StatusPage
from .service import Service
from .check_result import CheckResult
from .incident import Incident, IncidentUpdate, incident_affected_services

__all__ = [
    "StatusPage",
    "Service",
    "CheckResult",
    "Incident",
    "IncidentUpdate",
    "incident_affected_services",
    "Protocol",
    "ServiceStatus",
    "IncidentStatus",
    "IncidentSeverity",
]
