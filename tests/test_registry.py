"""Tests for the in-memory device registry."""

import pytest
from pydantic import ValidationError

from devicelink.storage import DeviceRegistry, DuplicateDeviceError, InMemoryDeviceRegistry
from devicelink.storage.models import DeviceCreate, DeviceUpdate


@pytest.fixture
def registry():
    return InMemoryDeviceRegistry()


class TestInMemoryDeviceRegistry:
    def test_satisfies_protocol(self, registry):
        assert isinstance(registry, DeviceRegistry)

    @pytest.mark.asyncio
    async def test_ids_start_at_one(self, registry):
        first = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20"))
        second = await registry.create(DeviceCreate(name="Porch", ip="10.0.0.21"))

        assert (first.id, second.id) == (1, 2)
        assert first.port == 80
        assert first.is_online is False
        assert first.device_type == "unknown"

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, registry):
        for name, ip in (("porch", "10.0.0.1"), ("Attic", "10.0.0.2"), ("kitchen", "10.0.0.3")):
            await registry.create(DeviceCreate(name=name, ip=ip))

        assert [d.name for d in await registry.list_all()] == ["Attic", "kitchen", "porch"]

    @pytest.mark.asyncio
    async def test_duplicate_ip_rejected(self, registry):
        await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20"))

        with pytest.raises(DuplicateDeviceError):
            await registry.create(DeviceCreate(name="Other", ip="10.0.0.20"))

    @pytest.mark.asyncio
    async def test_get_and_get_by_ip(self, registry):
        device = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20", port=6053))

        assert await registry.get(device.id) is device
        assert await registry.get_by_ip("10.0.0.20") is device
        assert await registry.get(99) is None
        assert await registry.get_by_ip("10.0.0.99") is None

    @pytest.mark.asyncio
    async def test_update_applies_only_set_fields(self, registry):
        device = await registry.create(
            DeviceCreate(name="Kitchen", ip="10.0.0.20", port=6053, apiPassword="pw")
        )

        updated = await registry.update(device.id, DeviceUpdate(name="Kitchen Light"))

        assert updated.name == "Kitchen Light"
        assert updated.port == 6053
        assert updated.api_password == "pw"

    @pytest.mark.asyncio
    async def test_update_to_taken_ip_rejected(self, registry):
        await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20"))
        porch = await registry.create(DeviceCreate(name="Porch", ip="10.0.0.21"))

        with pytest.raises(DuplicateDeviceError):
            await registry.update(porch.id, DeviceUpdate(ip="10.0.0.20"))

    @pytest.mark.asyncio
    async def test_update_missing_device(self, registry):
        assert await registry.update(42, DeviceUpdate(name="x")) is None

    @pytest.mark.asyncio
    async def test_delete(self, registry):
        device = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20"))

        assert await registry.delete(device.id) is True
        assert await registry.delete(device.id) is False
        assert await registry.list_all() == []

    @pytest.mark.asyncio
    async def test_mark_reachability(self, registry):
        device = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20"))

        await registry.mark_reachability("10.0.0.20", True)
        assert device.is_online is True
        assert device.last_seen is not None

        await registry.mark_reachability("10.0.0.20", False)
        assert device.is_online is False

    @pytest.mark.asyncio
    async def test_mark_unknown_ip_is_ignored(self, registry):
        await registry.mark_reachability("10.0.0.99", True)
        assert await registry.list_all() == []


class TestDeviceModels:
    def test_create_accepts_wire_aliases(self):
        body = DeviceCreate.model_validate(
            {"name": "Kitchen", "ip": "10.0.0.20", "apiPassword": "pw", "deviceType": "light"}
        )
        assert body.api_password == "pw"
        assert body.device_type == "light"

    def test_port_range_enforced(self):
        with pytest.raises(ValidationError):
            DeviceCreate(name="Kitchen", ip="10.0.0.20", port=70000)

    @pytest.mark.asyncio
    async def test_to_dict_hides_password(self):
        registry = InMemoryDeviceRegistry()
        device = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20", apiPassword="pw"))

        data = device.to_dict()

        assert "api_password" not in data
        assert data["has_api_password"] is True
        assert data["last_seen"] is None

    @pytest.mark.parametrize("field", ["name", "ip", "port", "deviceType", "autoDiscover"])
    def test_update_rejects_null(self, field):
        with pytest.raises(ValidationError):
            DeviceUpdate.model_validate({field: None})

    @pytest.mark.asyncio
    async def test_update_can_clear_password(self):
        registry = InMemoryDeviceRegistry()
        device = await registry.create(DeviceCreate(name="Kitchen", ip="10.0.0.20", apiPassword="pw"))

        await registry.update(device.id, DeviceUpdate.model_validate({"apiPassword": None}))

        assert device.api_password is None
        assert device.name == "Kitchen"
