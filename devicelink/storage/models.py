"""
Data models for the device registry.

`Device` is a plain dataclass; the create/update inputs are Pydantic models
so the API layer can validate request bodies with them directly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeviceCreate(BaseModel):
    """Fields accepted when registering a device."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    ip: str = Field(min_length=1)
    port: int = Field(default=80, ge=1, le=65535)
    api_password: Optional[str] = Field(default=None, alias="apiPassword")
    device_type: str = Field(default="unknown", alias="deviceType")
    auto_discover: bool = Field(default=True, alias="autoDiscover")


class DeviceUpdate(BaseModel):
    """Partial update; unset fields are left untouched."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1)
    ip: Optional[str] = Field(default=None, min_length=1)
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    api_password: Optional[str] = Field(default=None, alias="apiPassword")
    device_type: Optional[str] = Field(default=None, alias="deviceType")
    auto_discover: Optional[bool] = Field(default=None, alias="autoDiscover")

    @field_validator("name", "ip", "port", "device_type", "auto_discover")
    @classmethod
    def reject_null(cls, v):
        # Omit a field to leave it unchanged; only the password may be cleared
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


@dataclass
class Device:
    """A registered device. `port` is the detected, authoritative port."""

    id: int
    name: str
    ip: str
    port: int = 80
    api_password: Optional[str] = None
    device_type: str = "unknown"
    auto_discover: bool = True
    is_online: bool = False
    last_seen: Optional[datetime] = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ip": self.ip,
            "port": self.port,
            "has_api_password": bool(self.api_password),
            "device_type": self.device_type,
            "auto_discover": self.auto_discover,
            "is_online": self.is_online,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "created_at": self.created_at.isoformat(),
        }
