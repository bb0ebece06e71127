"""Tests for the HTTP API, with the connectivity service mocked out."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from devicelink.api.dependencies import get_connectivity, get_registry
from devicelink.connectivity.exceptions import (
    CommandPayloadError,
    DeviceUnreachableError,
    DiscoverySetupError,
    EntityNotFoundError,
    HandshakeError,
    SessionTimeoutError,
    UnsupportedCommandError,
)
from devicelink.connectivity.models import (
    CommandResult,
    DeviceStatus,
    ProtocolKind,
    ReachabilityVerdict,
)
from devicelink.connectivity.service import ConnectivityService
from devicelink.discovery.scanners import DiscoveredDevice
from devicelink.main import app
from devicelink.storage import DeviceCreate, InMemoryDeviceRegistry

NATIVE_VERDICT = ReachabilityVerdict(reachable=True, port=6053, protocol=ProtocolKind.NATIVE, probe="native")


@pytest.fixture
def registry():
    return InMemoryDeviceRegistry()


@pytest.fixture
def connectivity():
    service = MagicMock(spec=ConnectivityService)
    service.detect_protocol_and_port = AsyncMock(return_value=NATIVE_VERDICT)
    service.discover_devices = AsyncMock(return_value=[])
    service.dispatch_command = AsyncMock(
        return_value=CommandResult(
            success=True,
            message="Command executed successfully",
            via=ProtocolKind.NATIVE,
            command="toggle",
            data={"operation": "switch_command"},
        )
    )
    service.fetch_status = AsyncMock(
        return_value=DeviceStatus(online=True, via=ProtocolKind.NATIVE, detail={"model": "esp32dev"})
    )
    service.refresh_statuses = AsyncMock(return_value={})
    return service


@pytest.fixture
def client(registry, connectivity):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_connectivity] = lambda: connectivity
    yield TestClient(app)
    app.dependency_overrides.clear()


def _add(registry, name="Kitchen", ip="10.0.0.20", port=6053, online=True):
    device = asyncio.run(registry.create(DeviceCreate(name=name, ip=ip, port=port)))
    asyncio.run(registry.mark_reachability(ip, online))
    return device


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_ping(self, client):
        assert client.get("/api/ping").json() == {"status": "ok", "message": "pong"}

    def test_health_reports_discovery(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert set(body["discovery"]) == {"mdns_enabled", "sweep_enabled"}


# ---------------------------------------------------------------------------
# Registration and connection test
# ---------------------------------------------------------------------------


class TestCreateDevice:
    def test_stores_detected_port(self, client, connectivity, registry):
        resp = client.post(
            "/api/devices",
            json={"name": "Kitchen", "ip": "10.0.0.20", "port": 8080, "apiPassword": "pw"},
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["port"] == 6053
        assert body["is_online"] is True
        assert body["has_api_password"] is True
        connectivity.detect_protocol_and_port.assert_awaited_once_with("10.0.0.20", 8080, "pw")

    def test_unreachable_device_rejected(self, client, connectivity):
        connectivity.detect_protocol_and_port.return_value = ReachabilityVerdict.unreachable()

        resp = client.post("/api/devices", json={"name": "Kitchen", "ip": "10.0.0.20"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Device is not reachable"

    def test_duplicate_ip_rejected_before_probing(self, client, connectivity, registry):
        _add(registry)

        resp = client.post("/api/devices", json={"name": "Again", "ip": "10.0.0.20"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Device with this IP already exists"
        connectivity.detect_protocol_and_port.assert_not_awaited()

    def test_invalid_body(self, client):
        assert client.post("/api/devices", json={"ip": "10.0.0.20"}).status_code == 422


class TestTestConnection:
    def test_reachable(self, client):
        body = client.post("/api/devices/test-connection", json={"ip": "10.0.0.20", "port": 8080}).json()
        assert body == {
            "success": True,
            "port": 6053,
            "protocol": "native",
            "message": "Device is reachable",
        }

    def test_unreachable(self, client, connectivity):
        connectivity.detect_protocol_and_port.return_value = ReachabilityVerdict.unreachable()

        body = client.post("/api/devices/test-connection", json={"ip": "10.0.0.20"}).json()

        assert body["success"] is False
        assert body["port"] is None


# ---------------------------------------------------------------------------
# Registry endpoints
# ---------------------------------------------------------------------------


class TestRegistryEndpoints:
    def test_list_get_update_delete(self, client, registry):
        device = _add(registry)

        assert [d["name"] for d in client.get("/api/devices").json()] == ["Kitchen"]
        assert client.get(f"/api/devices/{device.id}").json()["ip"] == "10.0.0.20"

        resp = client.put(f"/api/devices/{device.id}", json={"name": "Kitchen Light"})
        assert resp.json()["name"] == "Kitchen Light"

        resp = client.delete(f"/api/devices/{device.id}")
        assert resp.json() == {"message": "Device deleted successfully"}
        assert client.get(f"/api/devices/{device.id}").status_code == 404

    def test_missing_device(self, client):
        assert client.get("/api/devices/99").status_code == 404
        assert client.put("/api/devices/99", json={"name": "x"}).status_code == 404
        assert client.delete("/api/devices/99").status_code == 404

    def test_update_to_taken_ip(self, client, registry):
        _add(registry)
        porch = _add(registry, name="Porch", ip="10.0.0.21")

        resp = client.put(f"/api/devices/{porch.id}", json={"ip": "10.0.0.20"})

        assert resp.status_code == 400

    def test_null_fields_rejected(self, client, registry):
        device = _add(registry)

        resp = client.put(f"/api/devices/{device.id}", json={"name": None, "port": None})

        assert resp.status_code == 422
        listed = client.get("/api/devices")
        assert listed.status_code == 200
        assert listed.json()[0]["name"] == "Kitchen"
        assert listed.json()[0]["port"] == 6053


# ---------------------------------------------------------------------------
# Discovery and refresh
# ---------------------------------------------------------------------------


class TestScan:
    def test_marks_known_devices_online(self, client, connectivity, registry):
        device = _add(registry, online=False)
        connectivity.discover_devices.return_value = [
            DiscoveredDevice(name="kitchen", host="10.0.0.20", port=6053, source="mdns"),
            DiscoveredDevice(name="new", host="10.0.0.30", port=6053, source="mdns"),
        ]

        body = client.post("/api/devices/scan").json()

        assert body["message"] == "Found 2 devices"
        assert [d["host"] for d in body["devices"]] == ["10.0.0.20", "10.0.0.30"]
        assert device.is_online is True
        assert asyncio.run(registry.get_by_ip("10.0.0.30")) is None

    def test_setup_failure(self, client, connectivity):
        connectivity.discover_devices.side_effect = DiscoverySetupError("mdns", OSError("address in use"))

        resp = client.post("/api/devices/scan")

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Network scan failed"

    def test_refresh_status(self, client, connectivity):
        connectivity.refresh_statuses.return_value = {"10.0.0.20": True}

        assert client.post("/api/devices/refresh-status").json() == {"devices": {"10.0.0.20": True}}


# ---------------------------------------------------------------------------
# Commands and status
# ---------------------------------------------------------------------------


class TestCommand:
    def test_dispatches_with_wire_body(self, client, connectivity, registry):
        device = _add(registry)

        resp = client.post(
            f"/api/devices/{device.id}/command",
            json={"command": "toggle", "entityId": "relay", "value": {"on": True}},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["result"]["via"] == "native"
        sent = connectivity.dispatch_command.await_args.args[1]
        assert sent.entity_id == "relay"

    def test_offline_device_rejected(self, client, connectivity, registry):
        device = _add(registry, online=False)

        resp = client.post(f"/api/devices/{device.id}/command", json={"command": "restart"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Device is offline"
        connectivity.dispatch_command.assert_not_awaited()

    def test_unsupported_command_on_offline_device(self, client, connectivity, registry):
        device = _add(registry, online=False)

        resp = client.post(f"/api/devices/{device.id}/command", json={"command": "blink_morse"})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Unsupported command: blink_morse"
        connectivity.dispatch_command.assert_not_awaited()

    @pytest.mark.parametrize(
        "error, code",
        [
            (UnsupportedCommandError("blink_morse"), 400),
            (CommandPayloadError("toggle", "value.on is required"), 422),
            (EntityNotFoundError("garage_door"), 404),
            (SessionTimeoutError("10.0.0.20", 6053, 5.0, "command"), 504),
            (HandshakeError("10.0.0.20", 6053, ConnectionRefusedError("bad password")), 502),
            (DeviceUnreachableError("10.0.0.20", 6053), 502),
        ],
    )
    def test_error_mapping(self, client, connectivity, registry, error, code):
        device = _add(registry)
        connectivity.dispatch_command.side_effect = error

        resp = client.post(f"/api/devices/{device.id}/command", json={"command": "toggle"})

        assert resp.status_code == code

    def test_missing_device(self, client):
        assert client.post("/api/devices/99/command", json={"command": "restart"}).status_code == 404


class TestStatus:
    def test_online_device(self, client, registry):
        device = _add(registry)

        body = client.get(f"/api/devices/{device.id}/status").json()

        assert body == {"online": True, "via": "native", "detail": {"model": "esp32dev"}}

    def test_offline_device_not_queried(self, client, connectivity, registry):
        device = _add(registry, online=False)

        assert client.get(f"/api/devices/{device.id}/status").json() == {"online": False}
        connectivity.fetch_status.assert_not_awaited()
