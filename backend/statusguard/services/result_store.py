"""Result store - persists check results and answers history queries."""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import StorageError
from ..models import CheckResult, Service
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import utcnow
from .metrics import bucketize, summarize
from .prober import ProbeResult

logger = logging.getLogger(__name__)


class ResultStore:
    """Append-only store of probe outcomes."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def save_check_result(self, result: ProbeResult) -> CheckResult:
        """Persist a probe outcome as a CheckResult row."""
        row = CheckResult(
            service_id=result.service_id,
            checked_at=result.checked_at,
            latency_ms=max(0, result.latency_ms),
            is_up=result.success,
            status_code=result.status_code,
            error=result.error,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store check result for service {result.service_id}: {e}") from e
        return row

    async def recent_results(self, service_id: str, limit: int) -> List[CheckResult]:
        """The `limit` most recent results for a service, newest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CheckResult)
                    .where(CheckResult.service_id == service_id)
                    .order_by(CheckResult.checked_at.desc(), CheckResult.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read results for service {service_id}: {e}") from e

    async def results_since(
        self,
        service_id: str,
        hours: int = 24,
        limit: Optional[int] = None,
    ) -> List[CheckResult]:
        """Results within the last `hours`, newest first."""
        cutoff = utcnow() - timedelta(hours=hours)
        query = (
            select(CheckResult)
            .where(
                CheckResult.service_id == service_id,
                CheckResult.checked_at >= cutoff,
            )
            .order_by(CheckResult.checked_at.desc(), CheckResult.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read results for service {service_id}: {e}") from e

    async def summary(self, service_id: str, hours: int = 24) -> Dict:
        """Availability and latency summary for one service."""
        return summarize(await self.results_since(service_id, hours))

    async def history(self, service_id: str, hours: int = 24, bucket_minutes: int = 5) -> List[Dict]:
        """Per-bucket availability and latency for one service, newest bucket first."""
        return bucketize(await self.results_since(service_id, hours), bucket_minutes)

    async def page_summary(self, status_page_id: str, hours: int = 24) -> List[Dict]:
        """Per-service totals for every service on a status page, ordered by name."""
        cutoff = utcnow() - timedelta(hours=hours)
        try:
            async with self._session_factory() as session:
                services = (await session.execute(
                    select(Service)
                    .where(Service.status_page_id == status_page_id)
                    .order_by(Service.name)
                )).scalars().all()

                checks = (await session.execute(
                    select(CheckResult)
                    .join(Service, Service.id == CheckResult.service_id)
                    .where(
                        Service.status_page_id == status_page_id,
                        CheckResult.checked_at >= cutoff,
                    )
                )).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to summarize status page {status_page_id}: {e}") from e

        by_service: Dict[str, List[CheckResult]] = {}
        for check in checks:
            by_service.setdefault(check.service_id, []).append(check)

        rows = []
        for service in services:
            stats = summarize(by_service.get(service.id, []))
            rows.append({
                "service_id": service.id,
                "service_name": service.name,
                "total_checks": stats["total_checks"],
                "successful_checks": stats["successful_checks"],
                "availability_percent": stats["availability_percent"],
                "avg_latency_ms": stats["avg_latency_ms"],
            })
        return rows

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete results checked before `cutoff`; returns the number removed."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(CheckResult).where(CheckResult.checked_at < cutoff)
                )
                await retry_on_lock(session.commit)
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete old check results: {e}") from e
