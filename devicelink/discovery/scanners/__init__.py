"""
Network scanners for device discovery.

Each scanner implements one discovery method:
- mDNS: Multicast DNS browse for the native API service type
- Sweep: concurrent TCP connects across the local /24 networks
"""

from .base import BaseScanner, DiscoveredDevice
from .mdns import ESPHOME_SERVICE_TYPE, MDNSScanner
from .subnet import SubnetScanner, candidate_addresses, local_prefixes

__all__ = [
    "BaseScanner",
    "DiscoveredDevice",
    "ESPHOME_SERVICE_TYPE",
    "MDNSScanner",
    "SubnetScanner",
    "candidate_addresses",
    "local_prefixes",
]
