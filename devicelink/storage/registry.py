"""
Device registry.

The connectivity engine only needs plain key-value semantics from the
registry, so it depends on the `DeviceRegistry` protocol. The in-memory
implementation backs the API and the tests.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, runtime_checkable

from .exceptions import DuplicateDeviceError
from .models import Device, DeviceCreate, DeviceUpdate

logger = logging.getLogger("devicelink.storage.registry")


@runtime_checkable
class DeviceRegistry(Protocol):
    """Protocol for device registry backends."""

    async def get(self, device_id: int) -> Optional[Device]:
        ...

    async def get_by_ip(self, ip: str) -> Optional[Device]:
        ...

    async def list_all(self) -> list[Device]:
        ...

    async def create(self, data: DeviceCreate) -> Device:
        ...

    async def update(self, device_id: int, data: DeviceUpdate) -> Optional[Device]:
        ...

    async def delete(self, device_id: int) -> bool:
        ...

    async def mark_reachability(self, ip: str, online: bool) -> None:
        ...


class InMemoryDeviceRegistry:
    """Registry keeping devices in a dict, with ids assigned from 1."""

    def __init__(self):
        self._devices: dict[int, Device] = {}
        self._next_id = 1

    async def get(self, device_id: int) -> Optional[Device]:
        return self._devices.get(device_id)

    async def get_by_ip(self, ip: str) -> Optional[Device]:
        for device in self._devices.values():
            if device.ip == ip:
                return device
        return None

    async def list_all(self) -> list[Device]:
        """Return all devices sorted by name."""
        return sorted(self._devices.values(), key=lambda d: d.name.lower())

    async def create(self, data: DeviceCreate) -> Device:
        if await self.get_by_ip(data.ip) is not None:
            raise DuplicateDeviceError(data.ip)

        device = Device(
            id=self._next_id,
            name=data.name,
            ip=data.ip,
            port=data.port,
            api_password=data.api_password or None,
            device_type=data.device_type or "unknown",
            auto_discover=data.auto_discover,
        )
        self._devices[device.id] = device
        self._next_id += 1
        logger.info("Registered device %d: %s (%s:%d)", device.id, device.name, device.ip, device.port)
        return device

    async def update(self, device_id: int, data: DeviceUpdate) -> Optional[Device]:
        device = self._devices.get(device_id)
        if device is None:
            return None

        changes = data.model_dump(exclude_unset=True)
        new_ip = changes.get("ip")
        if new_ip and new_ip != device.ip:
            other = await self.get_by_ip(new_ip)
            if other is not None and other.id != device_id:
                raise DuplicateDeviceError(new_ip)

        for key, value in changes.items():
            setattr(device, key, value)
        logger.debug("Updated device %d: %s", device_id, sorted(changes))
        return device

    async def delete(self, device_id: int) -> bool:
        removed = self._devices.pop(device_id, None)
        if removed:
            logger.info("Deleted device %d: %s", device_id, removed.name)
        return removed is not None

    async def mark_reachability(self, ip: str, online: bool) -> None:
        device = await self.get_by_ip(ip)
        if device is None:
            return
        device.is_online = online
        device.last_seen = datetime.now(timezone.utc)
        logger.debug("Marked %s %s", ip, "online" if online else "offline")


_registry: Optional[InMemoryDeviceRegistry] = None


def get_device_registry() -> InMemoryDeviceRegistry:
    """Get or create the process-wide registry used by the API."""
    global _registry
    if _registry is None:
        _registry = InMemoryDeviceRegistry()
    return _registry
