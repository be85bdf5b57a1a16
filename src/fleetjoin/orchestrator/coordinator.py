"""Join and leave workflows.

Each step gates the next: locate, assert compatibility, probe, resolve
the fleet, generate the payload, deliver it. Errors from any step end the
workflow unchanged.
"""

import base64
import json
import sys
from typing import Any, Optional, TextIO

from fleetjoin.config import defaults
from fleetjoin.fleet.api import FleetApi
from fleetjoin.fleet.config import ConfigGenerator
from fleetjoin.fleet.resolver import FleetResolver
from fleetjoin.orchestrator.locator import DeviceLocator
from fleetjoin.orchestrator.probe import DeviceProbe
from fleetjoin.orchestrator.ssh import ProgressExec, RemoteExecClient
from fleetjoin.telemetry.logger import bind_context, get_logger, unbind_context
from fleetjoin.utils.ux import print_success

logger = get_logger(__name__)

LEAVE_MESSAGE = (
    "Device successfully left the platform. The device will still be listed as part\n"
    "of the fleet, but changes to the fleet will no longer affect the device and its\n"
    "status will eventually be reported as 'Offline'. To irrecoverably delete the\n"
    "device from the fleet, remove it through the fleet-management dashboard."
)


def join_command(config_tool: str, payload: dict[str, Any]) -> str:
    """Shell command that applies ``payload`` on the device.

    The JSON is base64-encoded so it survives the remote shell unquoted
    and is decoded device-side.
    """
    encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return f'{config_tool} join "$(base64 -d <<< {encoded})"'


def leave_command(config_tool: str) -> str:
    """Shell command that removes the device configuration."""
    return f"{config_tool} leave"


class Coordinator:
    """Runs the join and leave workflows against one device.

    Example:
        coordinator = Coordinator(api, exec_client, locator, resolver, generator)
        await coordinator.join("192.168.1.50", fleet_name="myorg/myfleet")
    """

    def __init__(
        self,
        api: FleetApi,
        exec_client: RemoteExecClient,
        locator: DeviceLocator,
        resolver: FleetResolver,
        generator: ConfigGenerator,
        config_tool: str = defaults.DEFAULT_CONFIG_TOOL,
        stream: TextIO = sys.stdout,
    ) -> None:
        self.api = api
        self.exec_client = exec_client
        self.locator = locator
        self.resolver = resolver
        self.generator = generator
        self.config_tool = config_tool
        self.stream = stream

    def _probe(self) -> DeviceProbe:
        return DeviceProbe(self.exec_client, config_tool=self.config_tool)

    async def join(
        self,
        address: Optional[str] = None,
        fleet_name: Optional[str] = None,
        app_update_poll_interval: Optional[int] = None,
    ) -> None:
        """Provision a device into a fleet.

        Args:
            address: Device hostname or IP, discovered when omitted
            fleet_name: Fleet name or ``namespace/name`` slug
            app_update_poll_interval: Update poll interval in minutes
        """
        bind_context(workflow="join")
        try:
            probe = self._probe()

            logger.debug("Determining device...")
            address = address or await self.locator.locate()
            await probe.assert_compatible(address)
            bind_context(address=address)
            logger.debug("Using device", address=address)

            logger.debug("Determining device type...")
            device_type = await probe.get_device_type(address)
            logger.debug("Device type", device_type=device_type)

            logger.debug("Determining fleet...")
            fleet = await self.resolver.resolve(device_type, fleet_name)
            logger.debug("Using fleet", fleet=fleet.to_dict())
            # The fleet must carry the device's own type
            if fleet.device_type_slug != device_type:
                logger.debug("Forcing device type", device_type=device_type)
                fleet = fleet.with_device_type(device_type)

            logger.debug("Determining device OS version...")
            os_version = await probe.get_os_version(address)
            logger.debug("Device OS version", os_version=os_version)

            logger.debug("Generating fleet config...")
            payload = await self.generator.generate(fleet, os_version, app_update_poll_interval)
            logger.debug("Using config", config=payload)

            logger.debug("Configuring...")
            await ProgressExec(self.exec_client).run(
                address, join_command(self.config_tool, payload), "Configuring..."
            )

            platform_url = self.api.get_platform_base_url()
            print_success(f"Device successfully joined {platform_url}!", stream=self.stream)
        finally:
            # SSH connections never outlive a workflow
            self.exec_client.close()
            unbind_context("workflow", "address")

    async def leave(self, address: Optional[str] = None) -> None:
        """Remove a device from fleet management.

        Args:
            address: Device hostname or IP, discovered when omitted
        """
        bind_context(workflow="leave")
        try:
            logger.debug("Determining device...")
            address = address or await self.locator.locate()
            await self._probe().assert_compatible(address)
            bind_context(address=address)
            logger.debug("Using device", address=address)

            logger.debug("Deconfiguring...")
            await ProgressExec(self.exec_client).run(
                address, leave_command(self.config_tool), "Configuring..."
            )

            print_success(LEAVE_MESSAGE, stream=self.stream)
        finally:
            self.exec_client.close()
            unbind_context("workflow", "address")
