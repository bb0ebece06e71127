"""
Centralized configuration management using Pydantic Settings.

Configuration is loaded from environment variables with sensible defaults.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectivityConfig(BaseSettings):
    """Probe, detection and command dispatch configuration."""

    model_config = SettingsConfigDict(env_prefix="DEVICELINK_CONNECTIVITY_")

    http_port: int = Field(default=80, description="Port that implies the HTTP protocol")
    native_port: int = Field(default=6053, description="Default port of the native API")
    status_path: str = Field(default="/status", description="HTTP status path probed on devices")
    command_path: str = Field(default="/command", description="HTTP path commands are posted to")

    http_probe_timeout: float = Field(default=3.0, description="HTTP probe budget in seconds")
    native_probe_timeout: float = Field(default=5.0, description="Native handshake probe budget in seconds")
    tcp_probe_timeout: float = Field(default=3.0, description="Raw TCP probe budget in seconds")
    command_timeout: float = Field(
        default=5.0,
        description="Budget for one command (connect + invoke) in seconds",
    )
    status_timeout: float = Field(default=5.0, description="Budget for one status fetch in seconds")

    client_info: str = Field(
        default="devicelink",
        description="Client name announced to devices during the native handshake",
    )


class DiscoveryConfig(BaseSettings):
    """Network device discovery configuration."""

    model_config = SettingsConfigDict(env_prefix="DEVICELINK_DISCOVERY_")

    mdns_enabled: bool = Field(default=True, description="Enable mDNS discovery")
    sweep_enabled: bool = Field(
        default=True,
        description="Sweep local /24 subnets when mDNS finds nothing",
    )
    service_type: str = Field(
        default="_esphomelib._tcp.local.",
        description="mDNS service type announced by devices",
    )
    mdns_window: float = Field(default=5.0, description="mDNS listen window in seconds")
    mdns_resolve_timeout: float = Field(
        default=1.0,
        description="Seconds to wait for SRV/A records missing from the cache",
    )
    sweep_port: int = Field(default=6053, description="Port connected to during the sweep")
    sweep_timeout: float = Field(default=0.5, description="Per-address sweep budget in seconds")
    fallback_prefixes: list[str] = Field(
        default=["192.168.1", "192.168.0"],
        description="/24 prefixes swept when no local interface is found",
    )

    @field_validator("fallback_prefixes")
    @classmethod
    def validate_prefixes(cls, v: list[str]) -> list[str]:
        for prefix in v:
            octets = prefix.split(".")
            if len(octets) != 3 or not all(o.isdigit() and 0 <= int(o) <= 255 for o in octets):
                raise ValueError(f"Invalid /24 prefix: {prefix!r}")
        return v


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEVICELINK_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # General
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    api_prefix: str = Field(default="/api", description="Prefix for the HTTP API")
    host: str = Field(default="0.0.0.0", description="Address the server binds to")
    port: int = Field(default=8000, description="Port the server listens on")

    # Nested configs
    connectivity: ConnectivityConfig = Field(default_factory=ConnectivityConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


# Singleton settings instance
settings = Settings()
