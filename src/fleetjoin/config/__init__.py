"""Configuration management for fleetjoin."""

from fleetjoin.config.schemas import (
    ApiConfig,
    ConnectivityMode,
    DiscoveryConfig,
    FleetJoinConfig,
    JoinConfig,
    SSHConfig,
)
from fleetjoin.config.loader import load_config, get_default_config_path

__all__ = [
    "ApiConfig",
    "ConnectivityMode",
    "DiscoveryConfig",
    "FleetJoinConfig",
    "JoinConfig",
    "SSHConfig",
    "load_config",
    "get_default_config_path",
]
