"""Notification hub - relays status and incident events to subscribers."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..utils.time_utils import isoformat_utc, utcnow

logger = logging.getLogger(__name__)

Subscriber = Callable[[Dict[str, Any]], Awaitable[None]]

SERVICE_STATUS_CHANGED = "service_status_changed"
INCIDENT_CREATED = "incident_created"
INCIDENT_RESOLVED = "incident_resolved"


class NotificationHub:
    """Fans events out to registered async callbacks (websocket relays, webhooks)."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = asyncio.Lock()

    async def subscribe(self, callback: Subscriber):
        async with self._lock:
            self._subscribers.append(callback)

    async def unsubscribe(self, callback: Subscriber):
        async with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    async def publish(self, event: Dict[str, Any]):
        """Deliver an event to every subscriber. Subscriber failures are logged only."""
        async with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                await callback(event)
            except Exception as e:
                logger.error(f"Subscriber failed on {event.get('type')} event: {e}")

    async def service_status_changed(
        self,
        service_id: str,
        service_name: str,
        old_status: Optional[str],
        new_status: str,
    ):
        await self.publish({
            "type": SERVICE_STATUS_CHANGED,
            "service_id": service_id,
            "service_name": service_name,
            "old_status": old_status,
            "new_status": new_status,
            "timestamp": isoformat_utc(utcnow()),
        })

    async def incident_created(self, incident_id: str, service_id: str, service_name: str, title: str):
        await self.publish({
            "type": INCIDENT_CREATED,
            "incident_id": incident_id,
            "service_id": service_id,
            "service_name": service_name,
            "title": title,
            "timestamp": isoformat_utc(utcnow()),
        })

    async def incident_resolved(self, incident_id: str, service_id: str, service_name: str):
        await self.publish({
            "type": INCIDENT_RESOLVED,
            "incident_id": incident_id,
            "service_id": service_id,
            "service_name": service_name,
            "timestamp": isoformat_utc(utcnow()),
        })

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class WebhookRelay:
    """Subscriber that POSTs every event as JSON to a configured URL."""

    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout

    async def __call__(self, event: Dict[str, Any]):
        await self.send(event)

    async def send(self, payload: Dict[str, Any]) -> bool:
        """Send a webhook POST request."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                if response.status_code < 400:
                    logger.info(f"Webhook sent: {payload['type']}")
                    return True
                logger.warning(f"Webhook returned {response.status_code}")
                return False
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook: {e}")
            return False
