"""
mDNS (Multicast DNS) scanner.

Discovers devices on the local network that announce themselves via the
native API service type (_esphomelib._tcp.local. by default).
"""

import asyncio
import logging
from typing import Callable, Optional

from zeroconf import IPVersion, ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from ...connectivity.exceptions import DiscoverySetupError
from .base import BaseScanner, DiscoveredDevice

logger = logging.getLogger("devicelink.discovery.scanners.mdns")

ESPHOME_SERVICE_TYPE = "_esphomelib._tcp.local."


def _default_zeroconf() -> AsyncZeroconf:
    return AsyncZeroconf(ip_version=IPVersion.V4Only)


class MDNSScanner(BaseScanner):
    """
    mDNS/Zeroconf network scanner.

    Sends one browse query for the service type and listens for a fixed
    window. Each announced name is then resolved (SRV + A records) from the
    records that arrived with the answers, falling back to a short active
    query when the cache is missing something.
    """

    def __init__(
        self,
        service_type: str = ESPHOME_SERVICE_TYPE,
        window: float = 5.0,
        resolve_timeout: float = 1.0,
        zeroconf_factory: Callable[[], AsyncZeroconf] = _default_zeroconf,
    ):
        self.service_type = service_type
        self.window = window
        self.resolve_timeout = resolve_timeout
        self._zeroconf_factory = zeroconf_factory

    @property
    def protocol_name(self) -> str:
        return "mdns"

    async def scan(self, timeout: Optional[float] = None) -> list[DiscoveredDevice]:
        """
        Browse for devices via mDNS.

        Args:
            timeout: Listen window in seconds (defaults to the configured window)

        Returns:
            Discovered devices, one per IP address

        Raises:
            DiscoverySetupError: the multicast socket could not be opened
        """
        window = self.window if timeout is None else timeout
        logger.info("Starting mDNS scan for %s (window=%.1fs)", self.service_type, window)

        announced: list[str] = []

        def on_service_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange,
        ) -> None:
            if state_change in (ServiceStateChange.Added, ServiceStateChange.Updated):
                if name not in announced:
                    logger.debug("mDNS: Found service %s", name)
                    announced.append(name)

        try:
            aiozc = self._zeroconf_factory()
        except Exception as e:
            logger.error("mDNS setup failed: %s", e)
            raise DiscoverySetupError("mdns", e) from e

        browser: Optional[AsyncServiceBrowser] = None
        try:
            try:
                browser = AsyncServiceBrowser(
                    aiozc.zeroconf,
                    [self.service_type],
                    handlers=[on_service_state_change],
                )
            except Exception as e:
                logger.error("mDNS browser setup failed: %s", e)
                raise DiscoverySetupError("mdns", e) from e

            await asyncio.sleep(window)

            # Keyed by IP so a later answer for the same address wins
            found: dict[str, DiscoveredDevice] = {}
            for service_name in list(announced):
                device = await self._resolve(aiozc, service_name)
                if device is not None:
                    found[device.host] = device

            results = list(found.values())
            logger.info("mDNS scan complete: found %d devices", len(results))
            return results
        finally:
            if browser is not None:
                await browser.async_cancel()
            await aiozc.async_close()

    async def _resolve(self, aiozc: AsyncZeroconf, service_name: str) -> Optional[DiscoveredDevice]:
        info = AsyncServiceInfo(self.service_type, service_name)
        try:
            if not info.load_from_cache(aiozc.zeroconf):
                # async_request takes milliseconds
                if not await info.async_request(aiozc.zeroconf, timeout=self.resolve_timeout * 1000):
                    logger.debug("mDNS: Could not resolve %s", service_name)
                    return None
        except Exception as e:
            logger.warning("Failed to resolve service %s: %s", service_name, e)
            return None

        return self.service_info_to_device(info)

    def service_info_to_device(self, info: AsyncServiceInfo) -> Optional[DiscoveredDevice]:
        """Convert a resolved ServiceInfo into a discovered device."""
        addresses = info.parsed_addresses(IPVersion.V4Only)
        if not addresses or not info.port:
            logger.debug("No IPv4 address or port for service %s", info.name)
            return None

        properties = {}
        if info.properties:
            for key, value in info.properties.items():
                if isinstance(key, bytes):
                    key = key.decode("utf-8", errors="ignore")
                if isinstance(value, bytes):
                    value = value.decode("utf-8", errors="ignore")
                properties[key] = value

        suffix = "." + self.service_type
        name = info.name[: -len(suffix)] if info.name.endswith(suffix) else info.name

        return DiscoveredDevice(
            name=properties.get("friendly_name") or name,
            host=addresses[0],
            port=info.port,
            source=self.protocol_name,
            properties=properties,
        )
