"""Prober service - performs HTTP, HTTPS and TCP health probes."""
import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Tuple

import httpx

from ..errors import ProbeError
from ..models import Protocol
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPECTED_STATUS = 200
INVALID_TCP_ENDPOINT = "Invalid TCP endpoint format (expected: host:port)"


@dataclass
class ProbeResult:
    """Outcome of a single probe, before it is persisted."""
    service_id: str
    success: bool
    latency_ms: int = 0
    status_code: Optional[int] = None
    error: Optional[str] = None
    checked_at: datetime = field(default_factory=utcnow)


class ProberService:
    """Runs one protocol-specific probe per call and never raises for network failures."""

    def __init__(self, verify_tls: bool = True):
        self.verify_tls = verify_tls
        self._probers: Dict[Protocol, Callable[..., Awaitable[ProbeResult]]] = {
            Protocol.HTTP: self._probe_http,
            Protocol.HTTPS: self._probe_http,
            Protocol.TCP: self._probe_tcp,
        }

    async def probe(self, service) -> ProbeResult:
        """Probe a service according to its protocol."""
        try:
            protocol = Protocol(service.protocol)
        except ValueError:
            protocol = None

        prober = self._probers.get(protocol)
        if prober is None:
            name = protocol.value if protocol else service.protocol
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=0,
                error=f"Unsupported protocol: {name}",
            )

        try:
            return await prober(service, protocol)
        except ProbeError as e:
            return ProbeResult(service_id=service.id, success=False, latency_ms=0, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected probe failure for service {service.id}: {e}")
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=0,
                error=str(e) or e.__class__.__name__,
            )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return max(0, int((time.monotonic() - start) * 1000))

    @staticmethod
    def _normalize_url(endpoint: str, protocol: Protocol) -> str:
        """Give the endpoint the scheme its protocol names, replacing any other."""
        scheme = "https" if protocol == Protocol.HTTPS else "http"
        _, sep, rest = endpoint.partition("://")
        return f"{scheme}://{rest if sep else endpoint}"

    async def _fetch_status(self, client: httpx.AsyncClient, url: str, start: float) -> Tuple[int, int]:
        """Issue the GET and stop as soon as headers arrive; the body is never read."""
        async with client.stream("GET", url) as response:
            return response.status_code, self._elapsed_ms(start)

    async def _probe_http(self, service, protocol: Protocol) -> ProbeResult:
        """Perform an HTTP/HTTPS probe.

        Success iff the response status equals the expected status code. The
        timeout is a hard bound on the whole request; on timeout the latency is
        reported as exactly the configured timeout.
        """
        timeout_ms = service.timeout_ms
        timeout = timeout_ms / 1000
        expected = service.expected_status_code or DEFAULT_EXPECTED_STATUS
        url = self._normalize_url(service.endpoint, protocol)

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=False,
                verify=self.verify_tls,
            ) as client:
                status_code, latency_ms = await asyncio.wait_for(
                    self._fetch_status(client, url, start),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=timeout_ms,
                error=f"Timeout after {timeout_ms}ms",
            )
        except httpx.ConnectError as e:
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=self._elapsed_ms(start),
                error=f"Connection error: {e}",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=self._elapsed_ms(start),
                error=str(e) or e.__class__.__name__,
            )

        if status_code != expected:
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=latency_ms,
                status_code=status_code,
                error=f"Expected status {expected}, got {status_code}",
            )

        return ProbeResult(
            service_id=service.id,
            success=True,
            latency_ms=latency_ms,
            status_code=status_code,
        )

    @staticmethod
    def parse_tcp_endpoint(endpoint: str) -> Tuple[str, int]:
        """Split ``host:port``; raises ProbeError when the port is missing or invalid."""
        if "://" in endpoint:
            endpoint = endpoint.split("://", 1)[1]
        host, sep, port = endpoint.rpartition(":")
        host = host.strip("[]")
        if not sep or not host or not port.isdigit():
            raise ProbeError(INVALID_TCP_ENDPOINT)
        port_number = int(port)
        if not 0 < port_number < 65536:
            raise ProbeError(INVALID_TCP_ENDPOINT)
        return host, port_number

    async def _probe_tcp(self, service, protocol: Protocol) -> ProbeResult:
        """Open a TCP connection and close it as soon as it is established."""
        # Malformed endpoints fail here, before any network attempt
        host, port = self.parse_tcp_endpoint(service.endpoint)
        timeout_ms = service.timeout_ms

        start = time.monotonic()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=timeout_ms,
                error=f"TCP timeout after {timeout_ms}ms",
            )
        except OSError as e:
            return ProbeResult(
                service_id=service.id,
                success=False,
                latency_ms=self._elapsed_ms(start),
                error=str(e) or e.__class__.__name__,
            )

        latency_ms = self._elapsed_ms(start)
        writer.close()
        # The outcome is already decided; a failed close does not change it
        with contextlib.suppress(OSError):
            await writer.wait_closed()

        return ProbeResult(service_id=service.id, success=True, latency_ms=latency_ms)
