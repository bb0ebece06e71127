"""
FastAPI dependencies for service injection.

Routes receive the registry and the connectivity service through these,
so tests can swap either via `app.dependency_overrides`.
"""

from ..connectivity.service import ConnectivityService, get_connectivity_service
from ..storage.registry import DeviceRegistry, get_device_registry


def get_registry() -> DeviceRegistry:
    """FastAPI dependency that provides the device registry."""
    return get_device_registry()


def get_connectivity() -> ConnectivityService:
    """FastAPI dependency that provides the connectivity service."""
    return get_connectivity_service()
