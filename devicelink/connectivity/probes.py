"""
Reachability probes.

Three independent checks, each bounded by its own timeout:

- HTTP: GET the status path; any HTTP response counts as reachable
- Native: open a minimal native API session and wait for the handshake
- TCP: bare transport connect

Probes never raise and never send mutating commands. Every failure mode
resolves to False.
"""

import asyncio
import logging
from typing import Optional

import httpx

from .resolver import resolve_host
from .session import EspHomeSession, SessionFactory, native_session

logger = logging.getLogger("devicelink.connectivity.probes")


class ReachabilityProbes:
    """
    The probe strategies with their time budgets.

    Each call opens and fully owns its own transport; nothing is shared
    between concurrent probes.
    """

    def __init__(
        self,
        *,
        http_timeout: float = 3.0,
        native_timeout: float = 5.0,
        tcp_timeout: float = 3.0,
        status_path: str = "/status",
        session_factory: SessionFactory = EspHomeSession,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.http_timeout = http_timeout
        self.native_timeout = native_timeout
        self.tcp_timeout = tcp_timeout
        self.status_path = status_path
        self.session_factory = session_factory
        self.http_transport = http_transport

    async def http(self, host: str, port: int) -> bool:
        """
        Probe the device's HTTP status endpoint.

        Any response, whatever its status code, proves the HTTP stack is
        alive. Only transport-level failures are reported as unreachable.
        Resolution and the whole request share one `http_timeout` budget.
        """

        async def request() -> int:
            address = await resolve_host(host, timeout=self.http_timeout)
            url = f"http://{address}:{port}{self.status_path}"
            async with httpx.AsyncClient(
                timeout=self.http_timeout,
                transport=self.http_transport,
            ) as client:
                resp = await client.get(url)
            return resp.status_code

        try:
            status_code = await asyncio.wait_for(request(), timeout=self.http_timeout)
        except Exception as e:
            logger.debug("HTTP probe %s:%d failed: %s", host, port, e)
            return False

        logger.debug("HTTP probe %s:%d answered %d", host, port, status_code)
        return True

    async def native(self, host: str, port: int, credential: Optional[str] = None) -> bool:
        """Probe the native API. True only if the handshake completes in time."""

        async def handshake() -> None:
            address = await resolve_host(host, timeout=self.native_timeout)
            async with native_session(
                address,
                port,
                credential,
                timeout=self.native_timeout,
                session_factory=self.session_factory,
            ):
                logger.debug("Native probe %s:%d connected", address, port)

        try:
            await asyncio.wait_for(handshake(), timeout=self.native_timeout)
        except Exception as e:
            logger.debug("Native probe %s:%d failed: %s", host, port, e)
            return False
        return True

    async def tcp(self, host: str, port: int, timeout: Optional[float] = None) -> bool:
        """Probe a bare TCP connect. The transport is always closed afterwards."""
        budget = self.tcp_timeout if timeout is None else timeout
        address = await resolve_host(host, timeout=budget)
        writer = None
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=budget,
            )
            return True
        except Exception as e:
            logger.debug("TCP probe %s:%d failed: %s", address, port, e)
            return False
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except Exception as e:
                    logger.debug("Error closing TCP probe to %s:%d: %s", address, port, e)
