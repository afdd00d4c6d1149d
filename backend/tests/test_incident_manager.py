"""Tests for the incident ledger and lifecycle manager."""
from unittest.mock import AsyncMock

from statusguard.errors import StorageError
from statusguard.services import IncidentLifecycleManager
from statusguard.services.notifier import INCIDENT_CREATED, INCIDENT_RESOLVED


class TestSustainedFailure:
    async def test_creates_incident(self, ledger, make_service) -> None:
        service = await make_service(name="Checkout")
        manager = IncidentLifecycleManager(ledger)

        incident_id = await manager.on_sustained_failure(service, latency_ms=1000)

        incident = await ledger.get_incident(incident_id)
        assert incident.title == 'Service "Checkout" is down'
        assert incident.status == "investigating"
        assert incident.severity == "major"
        assert incident.status_page_id == service.status_page_id
        assert incident.resolved_at is None
        assert [s.id for s in incident.services] == [service.id]
        assert len(incident.updates) == 1
        assert incident.updates[0].status == "investigating"
        assert "Latency: 1000ms" in incident.updates[0].message

    async def test_unknown_latency_message(self, ledger, make_service) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger)

        incident_id = await manager.on_sustained_failure(service)

        incident = await ledger.get_incident(incident_id)
        assert incident.updates[0].message == "Service health check failed. Latency: unknown. Status: down"

    async def test_is_idempotent(self, ledger, make_service) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger)

        first = await manager.on_sustained_failure(service)
        second = await manager.on_sustained_failure(service)

        assert first is not None
        assert second is None
        assert len(await ledger.incidents_for_service(service.id)) == 1

    async def test_incidents_are_per_service(self, ledger, make_service) -> None:
        api = await make_service(name="API")
        web = await make_service(name="Web")
        manager = IncidentLifecycleManager(ledger)

        await manager.on_sustained_failure(api)
        await manager.on_sustained_failure(web)

        assert len(await ledger.incidents_for_service(api.id)) == 1
        assert len(await ledger.incidents_for_service(web.id)) == 1

    async def test_storage_error_is_a_no_op(self, make_service) -> None:
        service = await make_service()
        ledger = AsyncMock()
        ledger.active_incident_for_service.return_value = None
        ledger.create_incident.side_effect = StorageError("disk full")
        manager = IncidentLifecycleManager(ledger)

        assert await manager.on_sustained_failure(service) is None

    async def test_emits_event(self, ledger, make_service, notifier, recorder) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger, notifier)

        incident_id = await manager.on_sustained_failure(service)

        assert recorder.types() == [INCIDENT_CREATED]
        assert recorder.events[0]["incident_id"] == incident_id
        assert recorder.events[0]["service_id"] == service.id


class TestSustainedRecovery:
    async def test_resolves_active_incident(self, ledger, make_service) -> None:
        service = await make_service(name="Checkout")
        manager = IncidentLifecycleManager(ledger)
        incident_id = await manager.on_sustained_failure(service)

        resolved_id = await manager.on_sustained_recovery(service)

        incident = await ledger.get_incident(incident_id)
        assert resolved_id == incident_id
        assert incident.status == "resolved"
        assert incident.resolved_at is not None
        assert incident.resolved_at >= incident.created_at
        assert incident.updated_at == incident.resolved_at
        assert [u.status for u in incident.updates] == ["investigating", "resolved"]
        assert incident.updates[-1].message == 'Service "Checkout" has recovered and is operational.'
        assert await ledger.active_incident_for_service(service.id) is None

    async def test_no_active_incident_is_a_no_op(self, ledger, make_service) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger)

        assert await manager.on_sustained_recovery(service) is None
        assert await ledger.incidents_for_service(service.id) == []

    async def test_new_outage_after_resolution_opens_new_incident(self, ledger, make_service) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger)

        first = await manager.on_sustained_failure(service)
        await manager.on_sustained_recovery(service)
        second = await manager.on_sustained_failure(service)

        assert second is not None and second != first
        assert len(await ledger.incidents_for_service(service.id)) == 2

    async def test_storage_error_is_a_no_op(self, make_service) -> None:
        service = await make_service()
        ledger = AsyncMock()
        ledger.active_incident_for_service.side_effect = StorageError("connection reset")
        manager = IncidentLifecycleManager(ledger)

        assert await manager.on_sustained_recovery(service) is None
        ledger.resolve_incident.assert_not_called()

    async def test_emits_event(self, ledger, make_service, notifier, recorder) -> None:
        service = await make_service()
        manager = IncidentLifecycleManager(ledger, notifier)
        incident_id = await manager.on_sustained_failure(service)

        await manager.on_sustained_recovery(service)

        assert recorder.types() == [INCIDENT_CREATED, INCIDENT_RESOLVED]
        assert recorder.events[1]["incident_id"] == incident_id
