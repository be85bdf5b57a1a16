"""Device probing: compatibility gate, device type and OS version."""

import sys
from typing import Optional, TextIO

from fleetjoin.config import defaults
from fleetjoin.errors import CompatibilityError, RemoteExecError
from fleetjoin.orchestrator.devices import parse_os_release, record_value
from fleetjoin.orchestrator.ssh import RemoteExecClient
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.ux import print_error

logger = get_logger(__name__)


class DeviceProbe:
    """Reads identity information from a device over the exec channel.

    The identity record is fetched once per address and shared by
    get_device_type() and get_os_version().
    """

    def __init__(
        self,
        client: RemoteExecClient,
        config_tool: str = defaults.DEFAULT_CONFIG_TOOL,
        min_os_version: str = defaults.MIN_OS_VERSION,
        stream: TextIO = sys.stderr,
    ) -> None:
        self.client = client
        self.config_tool = config_tool
        self.min_os_version = min_os_version
        self.stream = stream
        self._records: dict[str, dict[str, str]] = {}

    async def assert_compatible(self, address: str) -> None:
        """Check the device can run the configuration tool.

        Raises:
            CompatibilityError: If the version check cannot be executed
        """
        command = f"{self.config_tool} --version"
        try:
            output = await self.client.exec_async(address, command)
        except RemoteExecError as e:
            print_error(str(e), stream=self.stream)
            raise CompatibilityError(address, command, self.min_os_version) from e
        logger.debug("Device is compatible", address=address, tool_version=output.strip())

    async def get_device_type(self, address: str) -> str:
        """Return the device type slug (``SLUG``)."""
        record = await self._record(address)
        return record_value(record, "SLUG", "device type")

    async def get_os_version(self, address: str) -> str:
        """Return the OS version (``VERSION_ID``)."""
        record = await self._record(address)
        return record_value(record, "VERSION_ID", "OS version ID")

    async def _record(self, address: str) -> dict[str, str]:
        record: Optional[dict[str, str]] = self._records.get(address)
        if record is None:
            record = parse_os_release(await self.client.read_os_release(address))
            self._records[address] = record
        return record
