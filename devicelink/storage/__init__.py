"""
Device registry for devicelink.

Holds registered devices and their last known reachability.
"""

from .exceptions import DuplicateDeviceError, StorageError
from .models import Device, DeviceCreate, DeviceUpdate
from .registry import DeviceRegistry, InMemoryDeviceRegistry, get_device_registry

__all__ = [
    "Device",
    "DeviceCreate",
    "DeviceUpdate",
    "DeviceRegistry",
    "InMemoryDeviceRegistry",
    "get_device_registry",
    "StorageError",
    "DuplicateDeviceError",
]
