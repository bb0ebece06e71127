"""
Device connectivity: reachability probes, protocol/port detection,
native sessions and command dispatch.

The `ConnectivityService` facade lives in `devicelink.connectivity.service`.
"""

from .detector import ProbeStep, ProtocolDetector
from .dispatcher import CommandDispatcher, NativeOperation, build_native_operation
from .exceptions import (
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
from .models import (
    HTTP_PORT,
    NATIVE_PORT,
    SUPPORTED_COMMANDS,
    CommandResult,
    DeviceAddress,
    DeviceCommand,
    DeviceStatus,
    ProtocolKind,
    ReachabilityVerdict,
)
from .probes import ReachabilityProbes
from .session import EspHomeSession, NativeSession, native_session

__all__ = [
    "ProbeStep",
    "ProtocolDetector",
    "CommandDispatcher",
    "NativeOperation",
    "build_native_operation",
    "ConnectivityError",
    "DeviceUnreachableError",
    "HandshakeError",
    "SessionTimeoutError",
    "UnsupportedCommandError",
    "CommandPayloadError",
    "EntityNotFoundError",
    "CommandFailedError",
    "DiscoverySetupError",
    "HTTP_PORT",
    "NATIVE_PORT",
    "SUPPORTED_COMMANDS",
    "CommandResult",
    "DeviceAddress",
    "DeviceCommand",
    "DeviceStatus",
    "ProtocolKind",
    "ReachabilityVerdict",
    "ReachabilityProbes",
    "EspHomeSession",
    "NativeSession",
    "native_session",
]
