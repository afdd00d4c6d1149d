"""Scheduler service - runs health-check cycles and drives the incident lifecycle.

Cycle design:
- One global cadence (check_interval_seconds); every service is probed every
  cycle. Service.check_interval_seconds is stored but not consulted here.
- Probes for all services run concurrently; the cycle waits for the slowest,
  which is bounded by its own timeout.
- Results are then processed one service at a time so incident reads and
  writes for a status page never interleave.
- A cycle that is still running when the next tick fires causes that tick to
  be skipped.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import Settings
from ..errors import SchedulingFailure, ServiceNotFoundError, StorageError
from ..models import Service, ServiceStatus
from ..utils.time_utils import utcnow
from .evaluator import OutcomeEvaluator
from .incident_manager import IncidentLifecycleManager
from .notifier import NotificationHub
from .prober import ProberService, ProbeResult
from .result_store import ResultStore
from .service_directory import ServiceDirectory

logger = logging.getLogger(__name__)

CYCLE_JOB_ID = "health_check_cycle"
CLEANUP_JOB_ID = "cleanup_old_results"


@dataclass
class ServiceOutcome:
    """What post-processing one probe result changed."""
    new_status: Optional[ServiceStatus] = None
    incident_opened: Optional[str] = None
    incident_resolved: Optional[str] = None


@dataclass
class CycleReport:
    """Summary of one cycle, returned to callers and logged."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    aborted: bool = False
    services_checked: int = 0
    probe_failures: int = 0
    incidents_opened: List[str] = field(default_factory=list)
    incidents_resolved: List[str] = field(default_factory=list)
    processing_errors: List[str] = field(default_factory=list)  # service ids


class SchedulerService:
    """Periodic health-check cycles plus the manual single-check entry point."""

    def __init__(
        self,
        directory: ServiceDirectory,
        result_store: ResultStore,
        evaluator: OutcomeEvaluator,
        incident_manager: IncidentLifecycleManager,
        prober: ProberService,
        notifier: Optional[NotificationHub] = None,
        config: Optional[Settings] = None,
    ):
        self.directory = directory
        self.result_store = result_store
        self.evaluator = evaluator
        self.incident_manager = incident_manager
        self.prober = prober
        self.notifier = notifier
        self.config = config or Settings()

        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self._cycle_lock = asyncio.Lock()
        # Serializes result post-processing across the cycle and manual checks
        self._processing_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def start(self):
        """Start the scheduler. The first cycle runs immediately."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self._run_scheduled_cycle,
            trigger=IntervalTrigger(seconds=self.config.check_interval_seconds),
            id=CYCLE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
        )

        self.scheduler.add_job(
            self.cleanup_old_results,
            trigger=IntervalTrigger(hours=1),
            id=CLEANUP_JOB_ID,
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (every {self.config.check_interval_seconds}s, "
            f"max_concurrent={self.config.max_concurrent_checks or 'unbounded'})"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _run_scheduled_cycle(self):
        """Timer entry point. Nothing raised here may stop future ticks."""
        try:
            await self.run_cycle()
        except Exception as e:
            logger.error(f"Health check cycle error: {e}")

    async def run_cycle(self) -> Optional[CycleReport]:
        """Run one cycle over every service.

        Returns None when skipped because another cycle is still in progress.
        """
        if self._cycle_lock.locked():
            logger.warning("Previous health check cycle still running, skipping this tick")
            return None

        async with self._cycle_lock:
            return await self._execute_cycle()

    async def _fetch_services(self) -> List[Service]:
        try:
            return await self.directory.list_services()
        except StorageError as e:
            raise SchedulingFailure(f"Could not fetch services: {e}") from e

    async def _execute_cycle(self) -> CycleReport:
        report = CycleReport(started_at=utcnow())

        try:
            services = await self._fetch_services()
        except SchedulingFailure as e:
            logger.error(f"Health check cycle failed: {e}")
            report.aborted = True
            report.finished_at = utcnow()
            return report

        if not services:
            logger.info("No services to check")
            report.finished_at = utcnow()
            return report

        logger.info(f"Checking {len(services)} services...")
        results = await self._probe_all(services)

        for service, result in results:
            report.services_checked += 1
            if not result.success:
                report.probe_failures += 1
            try:
                outcome = await self._process_result(service, result)
            except Exception as e:
                logger.error(f"Error processing check for service {service.name} ({service.id}): {e}")
                report.processing_errors.append(service.id)
                continue
            if outcome.incident_opened:
                report.incidents_opened.append(outcome.incident_opened)
            if outcome.incident_resolved:
                report.incidents_resolved.append(outcome.incident_resolved)

        report.finished_at = utcnow()
        logger.info(
            f"Health check cycle complete at {report.finished_at.isoformat()}Z "
            f"({report.services_checked} checked, {report.probe_failures} failing)"
        )
        return report

    async def _probe_all(self, services: List[Service]) -> List[Tuple[Service, ProbeResult]]:
        """Probe every service concurrently, optionally capped by max_concurrent_checks."""
        limit = self.config.max_concurrent_checks
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None

        async def probe(service: Service) -> ProbeResult:
            if semaphore is None:
                return await self.prober.probe(service)
            async with semaphore:
                return await self.prober.probe(service)

        results = await asyncio.gather(*[probe(service) for service in services])
        return list(zip(services, results))

    async def _process_result(self, service: Service, result: ProbeResult) -> ServiceOutcome:
        """Persist one result and apply the status/incident policy.

        failure: threshold reached -> open incident, status down; else degraded.
        success: threshold reached -> resolve incident, status operational;
                 else status left as is.
        """
        outcome = ServiceOutcome()
        async with self._processing_lock:
            await self.result_store.save_check_result(result)

            if not result.success:
                sustained = await self.evaluator.has_consecutive_outcome(
                    service.id, False, self.config.consecutive_failures_for_incident
                )
                if sustained:
                    outcome.incident_opened = await self.incident_manager.on_sustained_failure(
                        service, result.latency_ms
                    )
                    outcome.new_status = ServiceStatus.DOWN
                else:
                    outcome.new_status = ServiceStatus.DEGRADED
            else:
                sustained = await self.evaluator.has_consecutive_outcome(
                    service.id, True, self.config.consecutive_successes_for_recovery
                )
                if sustained:
                    outcome.incident_resolved = await self.incident_manager.on_sustained_recovery(service)
                    outcome.new_status = ServiceStatus.OPERATIONAL

            if outcome.new_status is not None:
                await self._update_status(service, outcome.new_status)

        return outcome

    async def _update_status(self, service: Service, status: ServiceStatus):
        previous = await self.directory.set_service_status(service.id, status)
        if previous is None or previous == status.value:
            return
        logger.info(f"Service {service.name}: {previous} -> {status.value}")
        if self.notifier:
            await self.notifier.service_status_changed(service.id, service.name, previous, status.value)

    async def run_single_check(self, service_id: str) -> ProbeResult:
        """Probe one service now and apply the same policy as a cycle.

        Raises ServiceNotFoundError for an unknown id. Storage errors propagate.
        """
        service = await self.directory.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)

        result = await self.prober.probe(service)
        await self._process_result(service, result)
        logger.info(f"Manual check for {service.name}: {'up' if result.success else 'down'}")
        return result

    async def cleanup_old_results(self):
        """Delete check results older than the retention window."""
        cutoff = utcnow() - timedelta(days=self.config.result_retention_days)
        try:
            removed = await self.result_store.delete_older_than(cutoff)
            logger.info(f"Cleaned up {removed} old check results")
        except StorageError as e:
            logger.error(f"Error cleaning up check results: {e}")
