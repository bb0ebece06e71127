"""
Custom exceptions for the device registry.

Provides explicit error types instead of silent failures.
"""


class StorageError(Exception):
    """Base exception for all storage errors."""

    pass


class DuplicateDeviceError(StorageError):
    """Raised when a device with the same IP is already registered."""

    def __init__(self, ip: str):
        self.ip = ip
        super().__init__(f"Device with IP {ip} already exists")
