"""
Subnet sweep scanner.

Fallback discovery for networks where mDNS is filtered: connects to the
native API port on every host of the local /24 networks at once.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import Awaitable, Callable, Iterable, Optional

import psutil

from .base import BaseScanner, DiscoveredDevice

logger = logging.getLogger("devicelink.discovery.scanners.subnet")

DEFAULT_FALLBACK_PREFIXES = ("192.168.1", "192.168.0")

# (host, port, timeout) -> reachable
ConnectProbe = Callable[[str, int, float], Awaitable[bool]]


def local_prefixes() -> list[str]:
    """
    Return the /24 prefixes (first three octets) of the host's
    non-loopback IPv4 interfaces, in interface order.
    """
    prefixes: list[str] = []
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        logger.warning("Could not enumerate network interfaces: %s", e)
        return prefixes

    for ifname, addrs in interfaces.items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                continue
            if ip.is_loopback:
                continue
            prefix = ".".join(addr.address.split(".")[:3])
            if prefix not in prefixes:
                logger.debug("Interface %s contributes prefix %s", ifname, prefix)
                prefixes.append(prefix)
    return prefixes


def candidate_addresses(prefixes: Iterable[str]) -> list[str]:
    """Expand /24 prefixes into host addresses .1-.254, without duplicates."""
    seen: set[str] = set()
    addresses: list[str] = []
    for prefix in prefixes:
        for host in range(1, 255):
            address = f"{prefix}.{host}"
            if address not in seen:
                seen.add(address)
                addresses.append(address)
    return addresses


class SubnetScanner(BaseScanner):
    """
    Brute-force TCP sweep of the local /24 networks.

    A bare connect carries no identity, so responders are named after
    their address.
    """

    def __init__(
        self,
        probe: ConnectProbe,
        port: int = 6053,
        timeout: float = 0.5,
        fallback_prefixes: Iterable[str] = DEFAULT_FALLBACK_PREFIXES,
        prefix_source: Callable[[], list[str]] = local_prefixes,
    ):
        self._probe = probe
        self.port = port
        self.timeout = timeout
        self.fallback_prefixes = list(fallback_prefixes)
        self._prefix_source = prefix_source

    @property
    def protocol_name(self) -> str:
        return "sweep"

    def prefixes(self) -> list[str]:
        prefixes = self._prefix_source()
        if not prefixes:
            logger.info("No local IPv4 interfaces found, sweeping %s", ", ".join(self.fallback_prefixes))
            return list(self.fallback_prefixes)
        return prefixes

    async def scan(self, timeout: Optional[float] = None) -> list[DiscoveredDevice]:
        """
        Sweep every candidate address concurrently.

        Args:
            timeout: Per-address connect budget (defaults to the configured one)
        """
        budget = self.timeout if timeout is None else timeout
        prefixes = self.prefixes()
        addresses = candidate_addresses(prefixes)
        logger.info(
            "Starting subnet sweep of %d addresses on port %d (timeout=%.1fs)",
            len(addresses), self.port, budget,
        )

        outcomes = await asyncio.gather(
            *(self._probe(address, self.port, budget) for address in addresses),
            return_exceptions=True,
        )

        results = []
        for address, outcome in zip(addresses, outcomes):
            if isinstance(outcome, Exception):
                logger.debug("Sweep probe %s failed: %s", address, outcome)
                continue
            if outcome:
                results.append(
                    DiscoveredDevice(name=address, host=address, port=self.port, source=self.protocol_name)
                )

        logger.info("Subnet sweep complete: found %d devices", len(results))
        return results
