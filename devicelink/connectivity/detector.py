"""
Protocol/port detection.

Decides which (protocol, port) pair a device at a known address actually
answers on. Candidates are tried in a fixed precedence order, strictly one
after another, and the first success wins:

1. HTTP on the requested port
2. Native API on the requested port
3. HTTP on port 80 (if not already tried)
4. Native API on port 6053 (if not already tried)
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .models import HTTP_PORT, NATIVE_PORT, DeviceAddress, ProtocolKind, ReachabilityVerdict
from .probes import ReachabilityProbes

logger = logging.getLogger("devicelink.connectivity.detector")


@dataclass
class ProbeStep:
    """One candidate in the detection plan."""
    probe: str  # "http" or "native"
    address: DeviceAddress
    run: Callable[[], Awaitable[bool]]

    @property
    def port(self) -> int:
        return self.address.port


class ProtocolDetector:
    """Evaluates the ordered probe plan for an address."""

    def __init__(
        self,
        probes: ReachabilityProbes,
        http_port: int = HTTP_PORT,
        native_port: int = NATIVE_PORT,
    ):
        self._probes = probes
        self.http_port = http_port
        self.native_port = native_port

    def plan(self, host: str, port: int, credential: Optional[str] = None) -> list[ProbeStep]:
        """Build the ordered list of probes to try for host:port."""

        def http_step(p: int) -> ProbeStep:
            return ProbeStep("http", DeviceAddress(host, p), lambda: self._probes.http(host, p))

        def native_step(p: int) -> ProbeStep:
            return ProbeStep("native", DeviceAddress(host, p), lambda: self._probes.native(host, p, credential))

        steps = [http_step(port), native_step(port)]
        if port != self.http_port:
            steps.append(http_step(self.http_port))
        if port != self.native_port:
            steps.append(native_step(self.native_port))
        return steps

    async def detect(
        self,
        host: str,
        port: int,
        credential: Optional[str] = None,
    ) -> ReachabilityVerdict:
        """
        Run the detection plan until one probe succeeds.

        Returns:
            A reachable verdict carrying the winning port, or an unreachable
            verdict once every candidate has failed. Never raises for a
            negative outcome.
        """
        for step in self.plan(host, port, credential):
            if await step.run():
                protocol = ProtocolKind.for_port(step.port, self.http_port)
                logger.info(
                    "Detected %s:%d via %s probe on port %d (%s)",
                    host, port, step.probe, step.port, protocol.value,
                )
                return ReachabilityVerdict(
                    reachable=True,
                    port=step.port,
                    protocol=protocol,
                    probe=step.probe,
                )

        logger.info("Device %s:%d is not reachable on any candidate port", host, port)
        return ReachabilityVerdict.unreachable()

    async def detect_port(
        self,
        host: str,
        port: int,
        credential: Optional[str] = None,
    ) -> Optional[int]:
        """Return the detected port, or None when the device is unreachable."""
        verdict = await self.detect(host, port, credential)
        return verdict.port
