"""Pytest configuration and fixtures."""
import uuid
from datetime import timedelta
from typing import Dict, List

import pytest

from statusguard.config import Settings
from statusguard.database import create_engine, create_session_factory, init_db, close_db
from statusguard.main import build_scheduler
from statusguard.models import CheckResult, Service, ServiceStatus, StatusPage
from statusguard.services import (
    IncidentLedger,
    NotificationHub,
    OutcomeEvaluator,
    ProbeResult,
    ResultStore,
    ServiceDirectory,
)
from statusguard.utils.time_utils import utcnow


class FakeProber:
    """Returns scripted outcomes per service id; defaults to success."""

    def __init__(self, outcomes: Dict[str, List[bool]] | None = None):
        self.outcomes = outcomes or {}
        self.calls: List[str] = []

    def script(self, service_id: str, *outcomes: bool):
        self.outcomes.setdefault(service_id, []).extend(outcomes)

    async def probe(self, service) -> ProbeResult:
        self.calls.append(service.id)
        queue = self.outcomes.get(service.id)
        success = queue.pop(0) if queue else True
        return ProbeResult(
            service_id=service.id,
            success=success,
            latency_ms=12 if success else service.timeout_ms,
            status_code=200 if success else None,
            error=None if success else "Connection error: refused",
        )


class EventRecorder:
    """NotificationHub subscriber that keeps every event."""

    def __init__(self):
        self.events: List[dict] = []

    async def __call__(self, event: dict):
        self.events.append(event)

    def types(self) -> List[str]:
        return [e["type"] for e in self.events]


@pytest.fixture
async def engine(tmp_path):
    """A file-backed SQLite database with all tables created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def result_store(session_factory) -> ResultStore:
    return ResultStore(session_factory)


@pytest.fixture
def ledger(session_factory) -> IncidentLedger:
    return IncidentLedger(session_factory)


@pytest.fixture
def directory(session_factory) -> ServiceDirectory:
    return ServiceDirectory(session_factory)


@pytest.fixture
def evaluator(result_store) -> OutcomeEvaluator:
    return OutcomeEvaluator(result_store)


@pytest.fixture
async def status_page(session_factory) -> StatusPage:
    page = StatusPage(name="Acme", slug=f"acme-{uuid.uuid4().hex[:8]}", description="Acme status")
    async with session_factory() as session:
        session.add(page)
        await session.commit()
    return page


@pytest.fixture
def make_service(session_factory, status_page):
    """Factory inserting a service on the shared status page."""

    async def _make(
        name: str = "API",
        endpoint: str = "http://api.example.test/health",
        protocol: str = "HTTP",
        status: ServiceStatus = ServiceStatus.OPERATIONAL,
        **kwargs,
    ) -> Service:
        service = Service(
            status_page_id=status_page.id,
            name=name,
            endpoint=endpoint,
            protocol=protocol,
            status=status.value,
            timeout_ms=kwargs.pop("timeout_ms", 1000),
            **kwargs,
        )
        async with session_factory() as session:
            session.add(service)
            await session.commit()
        return service

    return _make


@pytest.fixture
def add_history(session_factory):
    """Insert check results for a service, given oldest first."""

    async def _add(service_id: str, *outcomes: bool):
        start = utcnow() - timedelta(minutes=len(outcomes) + 1)
        async with session_factory() as session:
            for i, is_up in enumerate(outcomes):
                session.add(CheckResult(
                    service_id=service_id,
                    checked_at=start + timedelta(minutes=i),
                    latency_ms=20 if is_up else 1000,
                    is_up=is_up,
                    error=None if is_up else "down",
                ))
            await session.commit()

    return _add


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
async def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
async def notifier(recorder) -> NotificationHub:
    hub = NotificationHub()
    await hub.subscribe(recorder)
    return hub


@pytest.fixture
def config() -> Settings:
    return Settings(
        consecutive_failures_for_incident=2,
        consecutive_successes_for_recovery=2,
        max_concurrent_checks=0,
        scheduler_enabled=False,
    )


@pytest.fixture
def scheduler(session_factory, config, notifier, prober):
    return build_scheduler(session_factory, config, notifier, prober=prober)
