"""Incident lifecycle manager - opens and resolves incidents from sustained outcomes."""
import logging
from typing import Optional

from ..errors import StorageError
from ..models import Incident, IncidentSeverity, IncidentStatus, IncidentUpdate
from ..utils.time_utils import utcnow
from .incident_ledger import IncidentLedger
from .notifier import NotificationHub

logger = logging.getLogger(__name__)


def incident_title(service_name: str) -> str:
    return f'Service "{service_name}" is down'


def failure_message(latency_ms: Optional[int]) -> str:
    latency = f"{latency_ms}ms" if latency_ms is not None else "unknown"
    return f"Service health check failed. Latency: {latency}. Status: down"


def recovery_message(service_name: str) -> str:
    return f'Service "{service_name}" has recovered and is operational.'


class IncidentLifecycleManager:
    """Creates an incident on sustained failure and resolves it on sustained recovery.

    Neither entry point touches Service.status; the scheduler owns that write.
    Storage errors are logged and turn the call into a no-op, so the next
    cycle retries.
    """

    def __init__(self, ledger: IncidentLedger, notifier: Optional[NotificationHub] = None):
        self._ledger = ledger
        self._notifier = notifier

    async def on_sustained_failure(self, service, latency_ms: Optional[int] = None) -> Optional[str]:
        """Open an incident for the service unless one is already active.

        Returns the new incident id, or None when nothing was created.
        """
        try:
            existing = await self._ledger.active_incident_for_service(service.id)
            if existing:
                logger.debug(f"Incident {existing.id} already open for service {service.name}")
                return None

            now = utcnow()
            incident = Incident(
                status_page_id=service.status_page_id,
                title=incident_title(service.name),
                status=IncidentStatus.INVESTIGATING.value,
                severity=IncidentSeverity.MAJOR.value,
                created_at=now,
                updated_at=now,
            )
            update = IncidentUpdate(
                status=IncidentStatus.INVESTIGATING.value,
                message=failure_message(latency_ms),
                created_at=now,
            )
            incident_id = await self._ledger.create_incident(incident, update, [service.id])
        except StorageError as e:
            logger.error(f"Failed to create incident for service {service.name}: {e}")
            return None

        logger.info(f"Auto-created incident {incident_id} for service: {service.name}")
        if self._notifier:
            await self._notifier.incident_created(incident_id, service.id, service.name, incident.title)
        return incident_id

    async def on_sustained_recovery(self, service) -> Optional[str]:
        """Resolve the service's active incident, if it has one.

        Returns the resolved incident id, or None when nothing was resolved.
        """
        try:
            incident = await self._ledger.active_incident_for_service(service.id)
            if not incident:
                return None

            now = utcnow()
            update = IncidentUpdate(
                status=IncidentStatus.RESOLVED.value,
                message=recovery_message(service.name),
                created_at=now,
            )
            await self._ledger.resolve_incident(incident.id, update, resolved_at=now)
        except StorageError as e:
            logger.error(f"Failed to resolve incident for service {service.name}: {e}")
            return None

        logger.info(f"Auto-resolved incident {incident.id} for service: {service.name}")
        if self._notifier:
            await self._notifier.incident_resolved(incident.id, service.id, service.name)
        return incident.id
