"""Incident ledger - persisted incidents, their timeline and affected services."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..errors import StorageError
from ..models import Incident, IncidentStatus, IncidentUpdate, incident_affected_services
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class IncidentLedger:
    """Reads and writes incidents. Holds no policy; see IncidentLifecycleManager."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def active_incident_for_service(self, service_id: str) -> Optional[Incident]:
        """The non-resolved incident linked to a service, if any."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Incident)
                    .join(incident_affected_services, incident_affected_services.c.incident_id == Incident.id)
                    .where(
                        incident_affected_services.c.service_id == service_id,
                        Incident.status != IncidentStatus.RESOLVED.value,
                    )
                    .options(selectinload(Incident.updates))
                    .order_by(Incident.created_at.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to look up active incident for service {service_id}: {e}") from e

    async def create_incident(
        self,
        incident: Incident,
        initial_update: IncidentUpdate,
        affected_service_ids: Iterable[str] = (),
    ) -> str:
        """Insert an incident, link its affected services and add the first update.

        All three writes share one transaction. Returns the new incident id.
        """
        try:
            async with self._session_factory() as session:
                session.add(incident)
                await session.flush()

                service_ids = list(affected_service_ids)
                if service_ids:
                    await session.execute(
                        insert(incident_affected_services),
                        [{"incident_id": incident.id, "service_id": sid} for sid in service_ids],
                    )

                initial_update.incident_id = incident.id
                session.add(initial_update)
                await retry_on_lock(session.commit)
                return incident.id
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create incident '{incident.title}': {e}") from e

    async def resolve_incident(
        self,
        incident_id: str,
        update: IncidentUpdate,
        resolved_at: Optional[datetime] = None,
    ) -> None:
        """Mark an incident resolved and append the resolution update."""
        now = resolved_at or utcnow()
        try:
            async with self._session_factory() as session:
                incident = await session.get(Incident, incident_id)
                if incident is None:
                    raise StorageError(f"Incident {incident_id} does not exist")
                incident.status = IncidentStatus.RESOLVED.value
                incident.resolved_at = now
                incident.updated_at = now

                update.incident_id = incident_id
                update.status = IncidentStatus.RESOLVED.value
                session.add(update)
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to resolve incident {incident_id}: {e}") from e

    async def get_incident(self, incident_id: str) -> Optional[Incident]:
        """An incident with its timeline and affected services loaded."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Incident)
                    .where(Incident.id == incident_id)
                    .options(selectinload(Incident.updates), selectinload(Incident.services))
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load incident {incident_id}: {e}") from e

    async def incidents_for_service(self, service_id: str) -> List[Incident]:
        """Every incident ever linked to a service, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Incident)
                    .join(incident_affected_services, incident_affected_services.c.incident_id == Incident.id)
                    .where(incident_affected_services.c.service_id == service_id)
                    .options(selectinload(Incident.updates))
                    .order_by(Incident.created_at)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list incidents for service {service_id}: {e}") from e
