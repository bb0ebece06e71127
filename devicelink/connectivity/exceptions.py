"""
Custom exceptions for the connectivity layer.

Negative probe outcomes are plain return values; these types cover the
failures a caller has to tell apart (unreachable, handshake, timeout,
unsupported command).
"""

from typing import Optional


class ConnectivityError(Exception):
    """Base exception for all connectivity errors."""

    pass


class DeviceUnreachableError(ConnectivityError):
    """Raised when a device cannot be reached over its detected protocol."""

    def __init__(self, host: str, port: int, cause: Optional[Exception] = None):
        self.host = host
        self.port = port
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Device {host}:{port} is not reachable{detail}")


class HandshakeError(ConnectivityError):
    """Raised when the native session reports an error while connecting."""

    def __init__(self, host: str, port: int, cause: Exception):
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Handshake with {host}:{port} failed: {cause}")


class SessionTimeoutError(ConnectivityError):
    """Raised when a bounded operation exceeds its time budget."""

    def __init__(self, host: str, port: int, timeout: float, operation: str = "session"):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.operation = operation
        super().__init__(f"{operation.capitalize()} with {host}:{port} timed out after {timeout:.1f}s")


class UnsupportedCommandError(ConnectivityError):
    """Raised when a command name has no protocol mapping."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Unsupported command: {command}")


class CommandPayloadError(ConnectivityError, ValueError):
    """Raised when a supported command carries a malformed value payload."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Invalid payload for '{command}': {reason}")


class EntityNotFoundError(ConnectivityError):
    """Raised when a device exposes no entity matching the requested id."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Entity not found on device: {entity_id}")


class CommandFailedError(ConnectivityError):
    """Raised when the device rejects or cannot perform a native operation."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Native operation '{operation}' failed: {cause}")


class DiscoverySetupError(ConnectivityError):
    """Raised when discovery cannot acquire its network resources."""

    def __init__(self, phase: str, cause: Exception):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Discovery {phase} setup failed: {cause}")
