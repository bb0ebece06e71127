"""Shared fakes for connectivity tests.

The fake native session stands in for the aioesphomeapi-backed session and
counts every connect, command and close so tests can assert teardown.
"""

import asyncio
from typing import Any, Optional

import pytest
import pytest_asyncio

from devicelink.connectivity.exceptions import EntityNotFoundError
from devicelink.storage.models import Device


class FakeSession:
    """Records calls; behaviour is chosen by the owning recorder."""

    def __init__(self, recorder: "SessionRecorder", host: str, port: int, password: Optional[str]):
        self.recorder = recorder
        self.host = host
        self.port = port
        self.password = password
        self.calls: list[tuple[str, tuple, dict]] = []
        self.close_count = 0

    async def connect(self) -> None:
        if self.recorder.connect_behavior == "hang":
            await asyncio.sleep(3600)
        if self.recorder.connect_behavior == "error":
            raise ConnectionRefusedError("invalid password")

    async def resolve_key(self, entity_id: str) -> int:
        if entity_id.isdigit():
            return int(entity_id)
        if entity_id in self.recorder.keys:
            return self.recorder.keys[entity_id]
        raise EntityNotFoundError(entity_id)

    async def _invoke(self, name: str, *args: Any, **kwargs: Any) -> None:
        if self.recorder.invoke_behavior == "hang":
            await asyncio.sleep(3600)
        self.calls.append((name, args, kwargs))
        self.recorder.calls.append((name, args, kwargs))

    async def switch_command(self, key: int, state: bool) -> None:
        await self._invoke("switch_command", key, state=state)

    async def light_command(self, key: int, **kwargs: Any) -> None:
        await self._invoke("light_command", key, **kwargs)

    async def reboot(self) -> None:
        await self._invoke("reboot")

    async def factory_reset(self) -> None:
        await self._invoke("factory_reset")

    async def device_info(self) -> dict[str, Any]:
        await self._invoke("device_info")
        return {"name": "kitchen-light", "model": "esp32dev", "esphome_version": "2024.6.0"}

    async def close(self) -> None:
        self.close_count += 1


class SessionRecorder:
    """Session factory that remembers every session it created."""

    def __init__(self):
        self.connect_behavior = "ok"  # ok, error, hang
        self.invoke_behavior = "ok"  # ok, hang
        self.keys = {"led_strip": 7, "relay": 3}
        self.sessions: list[FakeSession] = []
        self.calls: list[tuple[str, tuple, dict]] = []

    def __call__(self, host: str, port: int, password: Optional[str] = None) -> FakeSession:
        session = FakeSession(self, host, port, password)
        self.sessions.append(session)
        return session

    @property
    def leaked(self) -> int:
        return sum(1 for s in self.sessions if s.close_count == 0)

    def all_closed_once(self) -> bool:
        return all(s.close_count == 1 for s in self.sessions)


@pytest_asyncio.fixture
async def dribbling_server():
    """
    Local HTTP server that sends headers at once, then one body byte every
    0.3s. Yields its port.
    """
    stop = asyncio.Event()

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: 50\r\n\r\n")
            await writer.drain()
            for _ in range(50):
                if stop.is_set():
                    break
                writer.write(b"x")
                await writer.drain()
                await asyncio.sleep(0.3)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        stop.set()
        server.close()
        await server.wait_closed()


@pytest.fixture
def sessions() -> SessionRecorder:
    return SessionRecorder()


@pytest.fixture
def native_device() -> Device:
    return Device(id=1, name="Kitchen", ip="10.0.0.20", port=6053, api_password="secret", is_online=True)


@pytest.fixture
def http_device() -> Device:
    return Device(id=2, name="Porch", ip="10.0.0.21", port=80, is_online=True)
