"""
Connectivity Service - the operations the request layer calls.

Wires probes, detection, dispatch and discovery together from settings.
The device registry is passed in by the caller; the service holds no
device state of its own.
"""

import asyncio
import logging
from functools import partial
from typing import Optional

import httpx

from ..config import Settings, settings
from ..discovery.scanners import DiscoveredDevice
from ..discovery.service import DiscoveryService
from ..storage.models import Device, DeviceUpdate
from ..storage.registry import DeviceRegistry
from .detector import ProtocolDetector
from .dispatcher import CommandDispatcher
from .models import CommandResult, DeviceCommand, DeviceStatus, ReachabilityVerdict
from .probes import ReachabilityProbes
from .session import EspHomeSession, SessionFactory

logger = logging.getLogger("devicelink.connectivity.service")


class ConnectivityService:
    """Facade over detection, dispatch, status and discovery."""

    def __init__(
        self,
        probes: ReachabilityProbes,
        detector: ProtocolDetector,
        dispatcher: CommandDispatcher,
        discovery: DiscoveryService,
    ):
        self.probes = probes
        self.detector = detector
        self.dispatcher = dispatcher
        self.discovery = discovery

    @classmethod
    def from_settings(
        cls,
        config: Settings = settings,
        session_factory: Optional[SessionFactory] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ConnectivityService":
        conn = config.connectivity
        if session_factory is None:
            session_factory = partial(EspHomeSession, client_info=conn.client_info)

        probes = ReachabilityProbes(
            http_timeout=conn.http_probe_timeout,
            native_timeout=conn.native_probe_timeout,
            tcp_timeout=conn.tcp_probe_timeout,
            status_path=conn.status_path,
            session_factory=session_factory,
            http_transport=http_transport,
        )
        detector = ProtocolDetector(probes, http_port=conn.http_port, native_port=conn.native_port)
        dispatcher = CommandDispatcher(
            http_port=conn.http_port,
            command_path=conn.command_path,
            status_path=conn.status_path,
            command_timeout=conn.command_timeout,
            status_timeout=conn.status_timeout,
            session_factory=session_factory,
            http_transport=http_transport,
        )
        discovery = DiscoveryService.from_config(config.discovery, probes)
        return cls(probes, detector, dispatcher, discovery)

    async def detect_protocol_and_port(
        self,
        host: str,
        port: int,
        credential: Optional[str] = None,
    ) -> ReachabilityVerdict:
        """Detect which port/protocol the device answers on."""
        return await self.detector.detect(host, port, credential)

    async def check_reachable(
        self,
        host: str,
        port: int,
        credential: Optional[str] = None,
    ) -> bool:
        """True when detection finds any reachable candidate port."""
        verdict = await self.detector.detect(host, port, credential)
        return verdict.reachable

    async def discover_devices(self) -> list[DiscoveredDevice]:
        """Find devices on the local network (may be empty)."""
        return await self.discovery.discover()

    async def dispatch_command(self, device: Device, command: DeviceCommand) -> CommandResult:
        """Execute a command on a device over its detected protocol."""
        return await self.dispatcher.dispatch(device, command)

    async def fetch_status(self, device: Device) -> DeviceStatus:
        """Return the live status of a device; never raises."""
        return await self.dispatcher.fetch_status(device)

    async def refresh_statuses(self, registry: DeviceRegistry) -> dict[str, bool]:
        """
        Re-check every registered device concurrently and store the verdicts.

        A device that now answers on a different port gets that port stored,
        so later dispatches pick the protocol it actually speaks.

        Returns:
            Mapping of device IP to online flag
        """
        devices = await registry.list_all()
        if not devices:
            return {}

        verdicts = await asyncio.gather(
            *(self.detector.detect(d.ip, d.port, d.api_password) for d in devices)
        )

        results: dict[str, bool] = {}
        for device, verdict in zip(devices, verdicts):
            if verdict.reachable and verdict.port != device.port:
                logger.info(
                    "Device %s moved from port %d to %d", device.ip, device.port, verdict.port
                )
                await registry.update(device.id, DeviceUpdate(port=verdict.port))
            await registry.mark_reachability(device.ip, verdict.reachable)
            results[device.ip] = verdict.reachable

        logger.info(
            "Refreshed %d devices: %d online",
            len(results), sum(1 for online in results.values() if online),
        )
        return results


_service: Optional[ConnectivityService] = None


def get_connectivity_service() -> ConnectivityService:
    """Get or create the global connectivity service."""
    global _service
    if _service is None:
        _service = ConnectivityService.from_settings()
    return _service


def set_connectivity_service(service: Optional[ConnectivityService]) -> None:
    """Replace the global service (used by tests and app wiring)."""
    global _service
    _service = service
