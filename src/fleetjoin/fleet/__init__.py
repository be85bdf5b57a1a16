"""Fleet resolution, creation and device configuration."""

from fleetjoin.fleet.api import FleetApi, FleetQuery, HttpFleetApi
from fleetjoin.fleet.config import ConfigGenerator
from fleetjoin.fleet.creator import FleetCreator
from fleetjoin.fleet.models import (
    Actor,
    DeviceRecord,
    DeviceTypeInfo,
    Fleet,
    is_architecture_compatible,
)
from fleetjoin.fleet.resolver import FleetResolver

__all__ = [
    "Actor",
    "ConfigGenerator",
    "DeviceRecord",
    "DeviceTypeInfo",
    "Fleet",
    "FleetApi",
    "FleetCreator",
    "FleetQuery",
    "FleetResolver",
    "HttpFleetApi",
    "is_architecture_compatible",
]
