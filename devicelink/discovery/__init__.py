"""
Device discovery module for devicelink.

Finds devices on the local network via mDNS, falling back to a
subnet sweep.
"""

from .scanners import DiscoveredDevice
from .service import DiscoveryService

__all__ = [
    "DiscoveredDevice",
    "DiscoveryService",
]
