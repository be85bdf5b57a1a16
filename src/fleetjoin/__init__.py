"""
fleetjoin - provision local devices into a fleet, or remove them from it.

fleetjoin combines local network discovery, remote execution over the
device-local SSH channel and the fleet-management API:
- Discover and select a device on the local network
- Probe its device type and OS version
- Resolve, disambiguate or create the target fleet
- Generate and deliver the device configuration
"""

__version__ = "0.1.0"

from fleetjoin.config.schemas import FleetJoinConfig

__all__ = [
    "__version__",
    "FleetJoinConfig",
]
