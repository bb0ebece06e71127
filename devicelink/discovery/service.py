"""
Discovery Service - finds devices whose address is not known yet.

Runs the mDNS scanner first. Only when it finds nothing does the subnet
sweep run, so each discovery runs at most one sweep.
"""

import logging
from typing import Optional

from ..config import DiscoveryConfig
from ..connectivity.probes import ReachabilityProbes
from .scanners import BaseScanner, DiscoveredDevice, MDNSScanner, SubnetScanner

logger = logging.getLogger("devicelink.discovery.service")


class DiscoveryService:
    """
    Two-phase device discovery.

    Phase 1 is the mDNS browse; phase 2, the subnet sweep, is the fallback
    for an empty phase 1. Either scanner may be disabled.
    """

    def __init__(
        self,
        mdns_scanner: Optional[BaseScanner] = None,
        sweep_scanner: Optional[BaseScanner] = None,
    ):
        self._mdns = mdns_scanner
        self._sweep = sweep_scanner

    @classmethod
    def from_config(cls, config: DiscoveryConfig, probes: ReachabilityProbes) -> "DiscoveryService":
        mdns = None
        if config.mdns_enabled:
            mdns = MDNSScanner(
                service_type=config.service_type,
                window=config.mdns_window,
                resolve_timeout=config.mdns_resolve_timeout,
            )
            logger.info("mDNS scanner enabled")

        sweep = None
        if config.sweep_enabled:
            sweep = SubnetScanner(
                probe=probes.tcp,
                port=config.sweep_port,
                timeout=config.sweep_timeout,
                fallback_prefixes=config.fallback_prefixes,
            )
            logger.info("Subnet sweep enabled")

        return cls(mdns_scanner=mdns, sweep_scanner=sweep)

    async def discover(self) -> list[DiscoveredDevice]:
        """
        Run discovery.

        Returns:
            Discovered devices; empty when nothing answered

        Raises:
            DiscoverySetupError: a scanner could not acquire its socket
        """
        results: list[DiscoveredDevice] = []

        if self._mdns is not None:
            results = await self._mdns.scan()
            if results:
                logger.info("Discovery found %d devices via mDNS", len(results))
                return results
            logger.info("mDNS found no devices")

        if self._sweep is not None:
            results = await self._sweep.scan()
            logger.info("Discovery found %d devices via subnet sweep", len(results))

        return results
