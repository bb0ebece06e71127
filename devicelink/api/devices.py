"""
Device management, connectivity and control endpoints.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ..connectivity.exceptions import (
    CommandFailedError,
    CommandPayloadError,
    ConnectivityError,
    DeviceUnreachableError,
    DiscoverySetupError,
    EntityNotFoundError,
    HandshakeError,
    SessionTimeoutError,
    UnsupportedCommandError,
)
from ..connectivity.models import SUPPORTED_COMMANDS, DeviceCommand
from ..connectivity.service import ConnectivityService
from ..storage.exceptions import DuplicateDeviceError
from ..storage.models import Device, DeviceCreate, DeviceUpdate
from ..storage.registry import DeviceRegistry
from .dependencies import get_connectivity, get_registry

logger = logging.getLogger("devicelink.api.devices")

router = APIRouter(prefix="/devices", tags=["Devices"])


# --- Request/Response Models ---


class TestConnectionBody(BaseModel):
    """Address to probe without registering it."""

    model_config = ConfigDict(populate_by_name=True)

    ip: str = Field(min_length=1)
    port: int = Field(default=80, ge=1, le=65535)
    api_password: Optional[str] = Field(default=None, alias="apiPassword")


class CommandResponse(BaseModel):
    """Response from a dispatched command."""
    success: bool
    message: str
    result: dict[str, Any] = {}


# Connectivity failures -> HTTP status, most specific first
_ERROR_STATUS: list[tuple[type[ConnectivityError], int]] = [
    (UnsupportedCommandError, status.HTTP_400_BAD_REQUEST),
    (CommandPayloadError, 422),
    (EntityNotFoundError, status.HTTP_404_NOT_FOUND),
    (SessionTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (HandshakeError, status.HTTP_502_BAD_GATEWAY),
    (DeviceUnreachableError, status.HTTP_502_BAD_GATEWAY),
    (CommandFailedError, status.HTTP_502_BAD_GATEWAY),
]


def _http_error(e: ConnectivityError) -> HTTPException:
    for error_type, code in _ERROR_STATUS:
        if isinstance(e, error_type):
            return HTTPException(code, str(e))
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))


async def _get_device(registry: DeviceRegistry, device_id: int) -> Device:
    device = await registry.get(device_id)
    if device is None:
        raise HTTPException(404, "Device not found")
    return device


# --- Endpoints ---


@router.get("")
async def list_devices(registry: DeviceRegistry = Depends(get_registry)):
    """List all registered devices, sorted by name."""
    return [device.to_dict() for device in await registry.list_all()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_device(
    body: DeviceCreate,
    registry: DeviceRegistry = Depends(get_registry),
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """
    Register a device after detecting the port it answers on.

    The detected port, not the requested one, is stored.
    """
    if await registry.get_by_ip(body.ip) is not None:
        raise HTTPException(400, "Device with this IP already exists")

    verdict = await connectivity.detect_protocol_and_port(body.ip, body.port, body.api_password)
    if not verdict.reachable:
        raise HTTPException(400, "Device is not reachable")

    try:
        device = await registry.create(body.model_copy(update={"port": verdict.port}))
    except DuplicateDeviceError as e:
        raise HTTPException(400, str(e))

    await registry.mark_reachability(device.ip, True)
    return device.to_dict()


@router.post("/test-connection")
async def test_connection(
    body: TestConnectionBody,
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """Probe an address and report the detected port, if any."""
    verdict = await connectivity.detect_protocol_and_port(body.ip, body.port, body.api_password)
    return {
        "success": verdict.reachable,
        "port": verdict.port,
        "protocol": verdict.protocol.value if verdict.protocol else None,
        "message": "Device is reachable" if verdict.reachable else "Device is not reachable",
    }


@router.post("/scan")
async def scan_network(
    registry: DeviceRegistry = Depends(get_registry),
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """Discover devices on the local network."""
    try:
        discovered = await connectivity.discover_devices()
    except DiscoverySetupError as e:
        logger.error("Network scan failed: %s", e)
        raise HTTPException(500, "Network scan failed")

    # Registered devices that answered are online
    for found in discovered:
        if await registry.get_by_ip(found.host) is not None:
            await registry.mark_reachability(found.host, True)

    return {
        "message": f"Found {len(discovered)} devices",
        "devices": [found.to_dict() for found in discovered],
    }


@router.post("/refresh-status")
async def refresh_status(
    registry: DeviceRegistry = Depends(get_registry),
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """Re-check reachability of every registered device."""
    results = await connectivity.refresh_statuses(registry)
    return {"devices": results}


@router.get("/{device_id}")
async def get_device(device_id: int, registry: DeviceRegistry = Depends(get_registry)):
    """Get details of a specific device."""
    device = await _get_device(registry, device_id)
    return device.to_dict()


@router.put("/{device_id}")
async def update_device(
    device_id: int,
    body: DeviceUpdate,
    registry: DeviceRegistry = Depends(get_registry),
):
    """Update fields of a device. The port is stored as given."""
    try:
        device = await registry.update(device_id, body)
    except DuplicateDeviceError as e:
        raise HTTPException(400, str(e))
    if device is None:
        raise HTTPException(404, "Device not found")
    return device.to_dict()


@router.delete("/{device_id}")
async def delete_device(device_id: int, registry: DeviceRegistry = Depends(get_registry)):
    """Remove a device from the registry."""
    if not await registry.delete(device_id):
        raise HTTPException(404, "Device not found")
    return {"message": "Device deleted successfully"}


@router.post("/{device_id}/command", response_model=CommandResponse)
async def send_command(
    device_id: int,
    body: DeviceCommand,
    registry: DeviceRegistry = Depends(get_registry),
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """Execute a command on a device over its detected protocol."""
    device = await _get_device(registry, device_id)
    if body.command not in SUPPORTED_COMMANDS:
        raise _http_error(UnsupportedCommandError(body.command))
    if not device.is_online:
        raise HTTPException(400, "Device is offline")

    try:
        result = await connectivity.dispatch_command(device, body)
    except ConnectivityError as e:
        logger.warning("Command %s on device %d failed: %s", body.command, device_id, e)
        raise _http_error(e)

    return CommandResponse(
        success=result.success,
        message=result.message,
        result=result.to_dict(),
    )


@router.get("/{device_id}/status")
async def get_device_status(
    device_id: int,
    registry: DeviceRegistry = Depends(get_registry),
    connectivity: ConnectivityService = Depends(get_connectivity),
):
    """Get the live status of a device."""
    device = await _get_device(registry, device_id)
    if not device.is_online:
        return {"online": False}

    device_status = await connectivity.fetch_status(device)
    return device_status.to_dict()
