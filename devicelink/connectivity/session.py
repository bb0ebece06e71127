"""
Short-lived native API sessions.

A session is one connect/authenticate/use/disconnect lifecycle against a
device's native API. Sessions are never reused: every probe or command opens
its own through `native_session()`, which guarantees the session is closed
exactly once on every exit path.
"""

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional, Protocol, runtime_checkable

from .exceptions import (
    CommandFailedError,
    ConnectivityError,
    EntityNotFoundError,
    HandshakeError,
    SessionTimeoutError,
)

logger = logging.getLogger("devicelink.connectivity.session")


@runtime_checkable
class NativeSession(Protocol):
    """
    Protocol for a single native API session.

    Implementations wrap a protocol client; the engine only relies on
    these operations.
    """

    async def connect(self) -> None:
        """Connect and authenticate. Raises on handshake failure."""
        ...

    async def resolve_key(self, entity_id: str) -> int:
        """Map an entity identifier to the numeric key the device expects."""
        ...

    async def switch_command(self, key: int, state: bool) -> None:
        ...

    async def light_command(
        self,
        key: int,
        *,
        brightness: Optional[float] = None,
        rgb: Optional[tuple[int, int, int]] = None,
        effect: Optional[str] = None,
    ) -> None:
        ...

    async def reboot(self) -> None:
        ...

    async def factory_reset(self) -> None:
        ...

    async def device_info(self) -> dict[str, Any]:
        """Return identity and firmware details of the connected device."""
        ...

    async def close(self) -> None:
        """Remove listeners and close the transport. Safe to call twice."""
        ...


# (host, port, password) -> session
SessionFactory = Callable[[str, int, Optional[str]], NativeSession]


async def _maybe_await(result: Any) -> Any:
    # Command calls are plain functions in newer aioesphomeapi releases
    if inspect.isawaitable(result):
        return await result
    return result


class EspHomeSession:
    """
    Native session backed by `aioesphomeapi.APIClient`.

    Only connects and logs in; no state, entity or log subscriptions are
    started, so the session footprint stays minimal.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: Optional[str] = None,
        client_info: str = "devicelink",
    ):
        from aioesphomeapi import APIClient

        self.host = host
        self.port = port
        self._client = APIClient(host, port, password or "", client_info=client_info)
        self._entities: Optional[list[Any]] = None
        self._closed = False

    async def connect(self) -> None:
        await self._client.connect(login=True)
        logger.debug("Native session connected to %s:%d", self.host, self.port)

    async def _list_entities(self) -> list[Any]:
        if self._entities is None:
            entities, _services = await self._client.list_entities_services()
            self._entities = list(entities)
        return self._entities

    async def resolve_key(self, entity_id: str) -> int:
        """
        Resolve an entity id to its numeric key.

        Numeric ids are used directly. Anything else is matched against the
        object_id and then the display name of the device's entities.
        """
        if entity_id.isdigit():
            return int(entity_id)

        entities = await self._list_entities()
        for info in entities:
            if getattr(info, "object_id", None) == entity_id:
                return info.key
        for info in entities:
            if getattr(info, "name", None) == entity_id:
                return info.key

        raise EntityNotFoundError(entity_id)

    async def _find_button(self, kind: str) -> int:
        from aioesphomeapi import ButtonInfo

        for info in await self._list_entities():
            if not isinstance(info, ButtonInfo):
                continue
            if info.object_id == kind or info.object_id.endswith(f"_{kind}"):
                return info.key
            if kind == "restart" and getattr(info, "device_class", "") == "restart":
                return info.key

        raise EntityNotFoundError(kind)

    async def switch_command(self, key: int, state: bool) -> None:
        try:
            await _maybe_await(self._client.switch_command(key, state))
        except ConnectivityError:
            raise
        except Exception as e:
            raise CommandFailedError("switch_command", e) from e

    async def light_command(
        self,
        key: int,
        *,
        brightness: Optional[float] = None,
        rgb: Optional[tuple[int, int, int]] = None,
        effect: Optional[str] = None,
    ) -> None:
        """Send a light command. Brightness is 0-100, colour channels 0-255."""
        kwargs: dict[str, Any] = {"state": True}
        if brightness is not None:
            kwargs["brightness"] = max(0.0, min(1.0, brightness / 100.0))
        if rgb is not None:
            kwargs["rgb"] = tuple(max(0.0, min(1.0, c / 255.0)) for c in rgb)
        if effect is not None:
            kwargs["effect"] = effect

        try:
            await _maybe_await(self._client.light_command(key, **kwargs))
        except ConnectivityError:
            raise
        except Exception as e:
            raise CommandFailedError("light_command", e) from e

    async def _press(self, kind: str) -> None:
        key = await self._find_button(kind)
        try:
            await _maybe_await(self._client.button_command(key))
        except Exception as e:
            raise CommandFailedError(kind, e) from e

    async def reboot(self) -> None:
        await self._press("restart")

    async def factory_reset(self) -> None:
        await self._press("factory_reset")

    async def device_info(self) -> dict[str, Any]:
        info = await self._client.device_info()
        return {
            "name": info.name,
            "friendly_name": getattr(info, "friendly_name", "") or info.name,
            "model": info.model,
            "mac_address": info.mac_address,
            "esphome_version": info.esphome_version,
            "compilation_time": info.compilation_time,
        }

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.disconnect(force=True)
        except Exception as e:
            logger.debug("Error closing native session to %s:%d: %s", self.host, self.port, e)


@asynccontextmanager
async def native_session(
    host: str,
    port: int,
    credential: Optional[str] = None,
    *,
    timeout: float,
    session_factory: SessionFactory = EspHomeSession,
) -> AsyncIterator[NativeSession]:
    """
    Open a native session, yielding it once connected.

    The connect races against `timeout`. Handshake errors surface as
    `HandshakeError`, expiry as `SessionTimeoutError`. The session is closed
    in a single finally block whatever happens, including cancellation of
    the enclosing task.
    """
    session = session_factory(host, port, credential)
    try:
        try:
            await asyncio.wait_for(session.connect(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise SessionTimeoutError(host, port, timeout, "handshake") from e
        except ConnectivityError:
            raise
        except Exception as e:
            raise HandshakeError(host, port, e) from e

        yield session
    finally:
        await session.close()
