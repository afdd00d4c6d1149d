"""Tests for the notification hub and webhook relay."""
import asyncio
import json

from statusguard.services import NotificationHub, WebhookRelay
from statusguard.services.notifier import SERVICE_STATUS_CHANGED


class TestNotificationHub:
    async def test_failing_subscriber_does_not_block_others(self, recorder) -> None:
        hub = NotificationHub()

        async def broken(event):
            raise RuntimeError("socket closed")

        await hub.subscribe(broken)
        await hub.subscribe(recorder)

        await hub.service_status_changed("svc-1", "API", "operational", "degraded")

        assert recorder.types() == [SERVICE_STATUS_CHANGED]
        assert recorder.events[0]["old_status"] == "operational"
        assert recorder.events[0]["new_status"] == "degraded"
        assert recorder.events[0]["timestamp"].endswith("Z")

    async def test_unsubscribe(self, recorder) -> None:
        hub = NotificationHub()
        await hub.subscribe(recorder)
        await hub.unsubscribe(recorder)

        await hub.incident_resolved("inc-1", "svc-1", "API")

        assert recorder.events == []
        assert hub.subscriber_count == 0


class TestWebhookRelay:
    async def test_posts_event_as_json(self) -> None:
        received = []

        async def handle(reader, writer):
            head = await reader.readuntil(b"\r\n\r\n")
            length = 0
            for line in head.decode().split("\r\n"):
                if line.lower().startswith("content-length:"):
                    length = int(line.split(":", 1)[1])
            received.append(json.loads(await reader.readexactly(length)))
            writer.write(b"HTTP/1.1 204 No Content\r\nConnection: close\r\n\r\n")
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            relay = WebhookRelay(f"http://127.0.0.1:{port}/hook")
            hub = NotificationHub()
            await hub.subscribe(relay)
            await hub.incident_created("inc-1", "svc-1", "API", 'Service "API" is down')
        finally:
            server.close()
            await server.wait_closed()

        assert received[0]["type"] == "incident_created"
        assert received[0]["incident_id"] == "inc-1"

    async def test_unreachable_endpoint_returns_false(self) -> None:
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        relay = WebhookRelay(f"http://127.0.0.1:{port}/hook", timeout=1)

        assert await relay.send({"type": "incident_resolved"}) is False
