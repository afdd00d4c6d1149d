"""Service directory - reads monitored services and writes their derived status."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import StorageError
from ..models import Service, ServiceStatus
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class ServiceDirectory:
    """Access to the services table for the scheduler."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_services(self) -> List[Service]:
        """All services, grouped by status page. No filtering."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Service).order_by(Service.status_page_id, Service.name)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list services: {e}") from e

    async def get_service(self, service_id: str) -> Optional[Service]:
        try:
            async with self._session_factory() as session:
                return await session.get(Service, service_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load service {service_id}: {e}") from e

    async def set_service_status(self, service_id: str, status: ServiceStatus) -> Optional[str]:
        """Write a service's status.

        Returns the previous status, or None if the service no longer exists.
        """
        try:
            async with self._session_factory() as session:
                service = await session.get(Service, service_id)
                if service is None:
                    logger.warning(f"Cannot set status of missing service {service_id}")
                    return None
                previous = service.status
                if previous != status.value:
                    service.status = status.value
                    service.updated_at = utcnow()
                    await retry_on_lock(session.commit)
                return previous
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update status of service {service_id}: {e}") from e
