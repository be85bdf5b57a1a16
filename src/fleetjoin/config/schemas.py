"""Configuration schemas using Pydantic for validation."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from fleetjoin.config import defaults


class ConnectivityMode(str, Enum):
    """Network connection managers a device configuration can target."""

    CONNMAN = "connman"  # Offline/local connection manager
    NETWORK_MANAGER = "NetworkManager"


class ApiConfig(BaseModel):
    """Fleet-management API configuration."""

    url: str = Field(
        default=defaults.DEFAULT_API_URL,
        description="Base URL of the fleet-management API",
    )
    base_url: str = Field(
        default=defaults.DEFAULT_BASE_URL,
        description="Platform base URL reported after a successful join",
    )
    token_env: str = Field(
        default=defaults.DEFAULT_TOKEN_ENV,
        description="Environment variable containing the API token",
    )
    timeout_seconds: int = Field(
        default=defaults.DEFAULT_API_TIMEOUT,
        gt=0,
        description="Timeout for API calls",
    )

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the API URL."""
        return v.rstrip("/")


class SSHConfig(BaseModel):
    """Device-local SSH configuration."""

    username: str = Field(
        default=defaults.DEFAULT_SSH_USER,
        description="SSH username on the device",
    )
    port: int = Field(
        default=defaults.DEFAULT_SSH_PORT,
        gt=0,
        lt=65536,
        description="SSH port on the device",
    )
    private_key_path: Optional[Path] = Field(
        default=None,
        description="Private key used to authenticate",
    )
    connect_timeout: int = Field(
        default=defaults.DEFAULT_SSH_TIMEOUT,
        gt=0,
        description="SSH connection timeout in seconds",
    )


class DiscoveryConfig(BaseModel):
    """Local device discovery configuration."""

    timeout_ms: int = Field(
        default=defaults.DEFAULT_DISCOVERY_TIMEOUT_MS,
        gt=0,
        description="How long to browse for devices",
    )
    liveness_port: int = Field(
        default=defaults.DEFAULT_LIVENESS_PORT,
        gt=0,
        lt=65536,
        description="Device management port pinged to check liveness",
    )
    liveness_timeout_ms: int = Field(
        default=defaults.DEFAULT_LIVENESS_TIMEOUT_MS,
        gt=0,
        description="Timeout of a single liveness ping",
    )
    max_parallel_probes: int = Field(
        default=defaults.DEFAULT_MAX_PARALLEL_PROBES,
        gt=0,
        description="Maximum concurrent liveness pings",
    )
    service_type: str = Field(
        default=defaults.DEFAULT_SERVICE_TYPE,
        description="mDNS service type to browse",
    )


class JoinConfig(BaseModel):
    """Device configuration delivery settings."""

    config_tool: str = Field(
        default=defaults.DEFAULT_CONFIG_TOOL,
        description="Configuration tool invoked on the device",
    )
    default_poll_interval: int = Field(
        default=defaults.DEFAULT_POLL_INTERVAL_MINUTES,
        gt=0,
        description="Fleet update poll interval in minutes",
    )
    connectivity: ConnectivityMode = Field(
        default=ConnectivityMode(defaults.DEFAULT_CONNECTIVITY),
        description="Connection manager targeted by generated network files",
    )


class FleetJoinConfig(BaseModel):
    """Root configuration for fleetjoin."""

    api: ApiConfig = Field(
        default_factory=ApiConfig,
        description="Fleet-management API configuration",
    )
    ssh: SSHConfig = Field(
        default_factory=SSHConfig,
        description="Device SSH configuration",
    )
    discovery: DiscoveryConfig = Field(
        default_factory=DiscoveryConfig,
        description="Discovery configuration",
    )
    join: JoinConfig = Field(
        default_factory=JoinConfig,
        description="Join/leave configuration",
    )
    log_level: str = Field(
        default="WARNING",
        description="Global log level",
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional log file",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()
