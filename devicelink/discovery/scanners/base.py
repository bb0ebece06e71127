"""
Base scanner protocol for device discovery.

All network scanners must implement this interface.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger("devicelink.discovery.scanners.base")


@dataclass
class DiscoveredDevice:
    """
    A device found on the network.

    Transient: the registry decides whether it matches a known device.
    """

    name: str
    host: str  # IP address
    port: int
    source: str  # Discovery phase that found it (mdns, sweep)
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "source": self.source,
            "properties": self.properties,
        }


class BaseScanner(ABC):
    """
    Abstract base class for network scanners.

    Scanners find devices whose address is not known in advance.
    Individual probe failures mean "not found"; only failing to set up
    the scanner itself raises.
    """

    @property
    @abstractmethod
    def protocol_name(self) -> str:
        """Name of the discovery method (e.g., 'mdns', 'sweep')."""
        ...

    @abstractmethod
    async def scan(self, timeout: Optional[float] = None) -> list[DiscoveredDevice]:
        """
        Perform a network scan and return discovered devices.

        Args:
            timeout: Override of the scanner's configured time budget

        Returns:
            List of discovered devices (possibly empty)
        """
        ...
