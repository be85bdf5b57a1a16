"""Device-side orchestration for fleetjoin.

This package provides:
- Remote command execution over device-local SSH
- Local device discovery and liveness probing
- Device identity probing
- The join and leave workflows
"""

from fleetjoin.orchestrator.coordinator import Coordinator, join_command, leave_command
from fleetjoin.orchestrator.devices import CandidateDevice, parse_os_release
from fleetjoin.orchestrator.discovery import DiscoveryService, StaticDiscovery, ZeroconfDiscovery
from fleetjoin.orchestrator.locator import DeviceLocator
from fleetjoin.orchestrator.probe import DeviceProbe
from fleetjoin.orchestrator.ssh import (
    CommandResult,
    ProgressExec,
    RemoteExecClient,
    SSHConnection,
    SSHCredentials,
)

__all__ = [
    "CandidateDevice",
    "CommandResult",
    "Coordinator",
    "DeviceLocator",
    "DeviceProbe",
    "DiscoveryService",
    "ProgressExec",
    "RemoteExecClient",
    "SSHConnection",
    "SSHCredentials",
    "StaticDiscovery",
    "ZeroconfDiscovery",
    "join_command",
    "leave_command",
]
