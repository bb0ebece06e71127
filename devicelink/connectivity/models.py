"""
Data types shared by probes, detection and command dispatch.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

HTTP_PORT = 80
NATIVE_PORT = 6053

SUPPORTED_COMMANDS = (
    "toggle",
    "set_brightness",
    "set_color",
    "set_effect",
    "restart",
    "factory_reset",
)


class ProtocolKind(str, Enum):
    """Protocol a device speaks on its detected port."""
    HTTP = "http"
    NATIVE = "native"

    @classmethod
    def for_port(cls, port: int, http_port: int = HTTP_PORT) -> "ProtocolKind":
        """Port 80 means HTTP; every other accepted port means the native API."""
        return cls.HTTP if port == http_port else cls.NATIVE


@dataclass(frozen=True)
class DeviceAddress:
    """Host (IP or name) and port of a device."""
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ReachabilityVerdict:
    """Outcome of one protocol/port detection."""
    reachable: bool
    port: Optional[int] = None
    protocol: Optional[ProtocolKind] = None
    probe: Optional[str] = None  # which probe strategy succeeded

    @classmethod
    def unreachable(cls) -> "ReachabilityVerdict":
        return cls(reachable=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reachable": self.reachable,
            "port": self.port,
            "protocol": self.protocol.value if self.protocol else None,
            "probe": self.probe,
        }


class DeviceCommand(BaseModel):
    """An abstract command addressed to one device."""

    model_config = ConfigDict(populate_by_name=True)

    command: str
    entity_id: Optional[str] = Field(default=None, alias="entityId")
    value: Any = None


@dataclass
class CommandResult:
    """Normalized result of a dispatched command."""
    success: bool
    message: str
    via: ProtocolKind
    command: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "via": self.via.value,
            "command": self.command,
            "data": self.data,
        }


@dataclass
class DeviceStatus:
    """Online flag plus whatever detail the device's protocol exposes."""
    online: bool
    via: Optional[ProtocolKind] = None
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "online": self.online,
            "via": self.via.value if self.via else None,
            "detail": self.detail,
        }
