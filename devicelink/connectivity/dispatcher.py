"""
Command dispatch and status fetching for devices with a known port.

The detected port decides the protocol (see `ProtocolKind.for_port`); the
dispatcher never re-probes. HTTP devices get one bounded POST. Native
devices get a fresh session in which the command is translated into exactly
one native operation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..storage.models import Device
from .exceptions import (
    CommandPayloadError,
    DeviceUnreachableError,
    HandshakeError,
    SessionTimeoutError,
    UnsupportedCommandError,
)
from .models import (
    HTTP_PORT,
    SUPPORTED_COMMANDS,
    CommandResult,
    DeviceCommand,
    DeviceStatus,
    ProtocolKind,
)
from .resolver import resolve_host
from .session import EspHomeSession, NativeSession, SessionFactory, native_session

logger = logging.getLogger("devicelink.connectivity.dispatcher")


@dataclass
class NativeOperation:
    """A command translated into one call on a native session."""
    method: str  # switch_command, light_command, reboot, factory_reset
    entity_id: Optional[str] = None
    kwargs: dict[str, Any] = field(default_factory=dict)

    async def apply(self, session: NativeSession) -> None:
        call = getattr(session, self.method)
        if self.entity_id is None:
            await call(**self.kwargs)
            return
        key = await session.resolve_key(self.entity_id)
        await call(key, **self.kwargs)


def _payload(command: DeviceCommand) -> dict[str, Any]:
    if not isinstance(command.value, dict):
        raise CommandPayloadError(command.command, "value must be an object")
    return command.value


def _entity(command: DeviceCommand) -> str:
    if not command.entity_id:
        raise CommandPayloadError(command.command, "entityId is required")
    return str(command.entity_id)


def _channel(color: dict[str, Any], name: str, command: str) -> int:
    raw = color.get(name)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise CommandPayloadError(command, f"color.{name} must be a number")
    if not 0 <= raw <= 255:
        raise CommandPayloadError(command, f"color.{name} must be between 0 and 255")
    return int(raw)


def build_native_operation(command: DeviceCommand) -> NativeOperation:
    """
    Translate an abstract command into its native operation.

    Raises:
        UnsupportedCommandError: command name has no mapping
        CommandPayloadError: the value payload does not fit the command
    """
    name = command.command

    if name == "toggle":
        value = _payload(command)
        if "on" not in value:
            raise CommandPayloadError(name, "value.on is required")
        return NativeOperation("switch_command", _entity(command), {"state": bool(value["on"])})

    if name == "set_brightness":
        brightness = _payload(command).get("brightness")
        if isinstance(brightness, bool) or not isinstance(brightness, (int, float)):
            raise CommandPayloadError(name, "value.brightness must be a number")
        return NativeOperation("light_command", _entity(command), {"brightness": float(brightness)})

    if name == "set_color":
        color = _payload(command).get("color")
        if not isinstance(color, dict):
            raise CommandPayloadError(name, "value.color must be an object with r, g, b")
        rgb = (_channel(color, "r", name), _channel(color, "g", name), _channel(color, "b", name))
        return NativeOperation("light_command", _entity(command), {"rgb": rgb})

    if name == "set_effect":
        effect = _payload(command).get("effect")
        if not isinstance(effect, str) or not effect:
            raise CommandPayloadError(name, "value.effect must be a non-empty string")
        return NativeOperation("light_command", _entity(command), {"effect": effect})

    if name == "restart":
        return NativeOperation("reboot")

    if name == "factory_reset":
        return NativeOperation("factory_reset")

    raise UnsupportedCommandError(name)


class CommandDispatcher:
    """Executes commands and status queries against one device at a time."""

    def __init__(
        self,
        *,
        http_port: int = HTTP_PORT,
        command_path: str = "/command",
        status_path: str = "/status",
        command_timeout: float = 5.0,
        status_timeout: float = 5.0,
        session_factory: SessionFactory = EspHomeSession,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.http_port = http_port
        self.command_path = command_path
        self.status_path = status_path
        self.command_timeout = command_timeout
        self.status_timeout = status_timeout
        self.session_factory = session_factory
        self.http_transport = http_transport

    def _http_client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.http_transport)

    async def dispatch(self, device: Device, command: DeviceCommand) -> CommandResult:
        """
        Execute one command on a device.

        Raises:
            UnsupportedCommandError: unknown command name (before any I/O)
            CommandPayloadError: malformed value for a native command
            DeviceUnreachableError: HTTP transport failure
            HandshakeError: native session refused the connection
            SessionTimeoutError: the command budget expired
        """
        if command.command not in SUPPORTED_COMMANDS:
            raise UnsupportedCommandError(command.command)

        protocol = ProtocolKind.for_port(device.port, self.http_port)
        if protocol is ProtocolKind.HTTP:
            return await self._dispatch_http(device, command)

        operation = build_native_operation(command)
        return await self._dispatch_native(device, command, operation)

    async def _dispatch_http(self, device: Device, command: DeviceCommand) -> CommandResult:
        body = command.model_dump(by_alias=True, exclude_none=True)

        async def post() -> httpx.Response:
            host = await resolve_host(device.ip, timeout=self.command_timeout)
            url = f"http://{host}:{device.port}{self.command_path}"
            async with self._http_client(self.command_timeout) as client:
                return await client.post(url, json=body)

        # One budget for resolution and the whole exchange, body included
        try:
            resp = await asyncio.wait_for(post(), timeout=self.command_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise SessionTimeoutError(device.ip, device.port, self.command_timeout, "command") from e
        except httpx.HTTPError as e:
            raise DeviceUnreachableError(device.ip, device.port, e) from e

        logger.info("Sent %s to %s over HTTP (%d)", command.command, device.name, resp.status_code)
        return CommandResult(
            success=True,
            message="Command executed successfully",
            via=ProtocolKind.HTTP,
            command=command.command,
            data={"status_code": resp.status_code},
        )

    async def _dispatch_native(
        self,
        device: Device,
        command: DeviceCommand,
        operation: NativeOperation,
    ) -> CommandResult:
        async def run() -> None:
            host = await resolve_host(device.ip, timeout=self.command_timeout)
            async with native_session(
                host,
                device.port,
                device.api_password,
                timeout=self.command_timeout,
                session_factory=self.session_factory,
            ) as session:
                await operation.apply(session)

        try:
            await asyncio.wait_for(run(), timeout=self.command_timeout)
        except asyncio.TimeoutError as e:
            raise SessionTimeoutError(device.ip, device.port, self.command_timeout, "command") from e

        logger.info("Sent %s to %s over native API (%s)", command.command, device.name, operation.method)
        return CommandResult(
            success=True,
            message="Command executed successfully",
            via=ProtocolKind.NATIVE,
            command=command.command,
            data={"operation": operation.method},
        )

    async def fetch_status(self, device: Device) -> DeviceStatus:
        """
        Query a device's live status.

        Never raises: failures come back as offline with a reason.
        """
        protocol = ProtocolKind.for_port(device.port, self.http_port)

        if protocol is ProtocolKind.HTTP:

            async def get() -> httpx.Response:
                host = await resolve_host(device.ip, timeout=self.status_timeout)
                url = f"http://{host}:{device.port}{self.status_path}"
                async with self._http_client(self.status_timeout) as client:
                    return await client.get(url)

            try:
                resp = await asyncio.wait_for(get(), timeout=self.status_timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException):
                return DeviceStatus(online=False, via=protocol, detail={"reason": "timeout"})
            except httpx.HTTPError as e:
                logger.debug("Status request to %s:%d failed: %s", device.ip, device.port, e)
                return DeviceStatus(online=False, via=protocol, detail={"reason": "unreachable"})

            try:
                detail = resp.json()
            except ValueError:
                detail = {}
            if not isinstance(detail, dict):
                detail = {"status": detail}
            detail.setdefault("status_code", resp.status_code)
            return DeviceStatus(online=True, via=protocol, detail=detail)

        async def read_info() -> dict[str, Any]:
            host = await resolve_host(device.ip, timeout=self.status_timeout)
            async with native_session(
                host,
                device.port,
                device.api_password,
                timeout=self.status_timeout,
                session_factory=self.session_factory,
            ) as session:
                return await session.device_info()

        try:
            info = await asyncio.wait_for(read_info(), timeout=self.status_timeout)
        except (asyncio.TimeoutError, SessionTimeoutError):
            return DeviceStatus(online=False, via=protocol, detail={"reason": "timeout"})
        except HandshakeError as e:
            logger.debug("Native status handshake with %s:%d failed: %s", device.ip, device.port, e)
            return DeviceStatus(online=False, via=protocol, detail={"reason": "handshake_error"})
        except Exception as e:
            logger.warning("Native status for %s:%d failed: %s", device.ip, device.port, e)
            return DeviceStatus(online=False, via=protocol, detail={"reason": "error"})

        return DeviceStatus(online=True, via=protocol, detail=info)
