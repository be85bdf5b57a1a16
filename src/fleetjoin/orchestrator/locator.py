"""Locating a device on the local network."""

import sys
from typing import Optional, TextIO

import httpx

from fleetjoin.config import defaults
from fleetjoin.config.schemas import DiscoveryConfig
from fleetjoin.errors import NoDevicesFound
from fleetjoin.orchestrator.devices import CandidateDevice
from fleetjoin.orchestrator.discovery import DiscoveryService
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.async_utils import gather_with_limit
from fleetjoin.utils.prompts import Prompter
from fleetjoin.utils.ux import print_info, status

logger = get_logger(__name__)


class DeviceLocator:
    """Finds a single responsive device, asking the user when several answer.

    Every discovered candidate is pinged concurrently on its management
    port. A failed ping only marks the candidate unresponsive.

    Example:
        locator = DeviceLocator(ZeroconfDiscovery(), ConsolePrompter())
        address = await locator.locate()
    """

    def __init__(
        self,
        discovery: DiscoveryService,
        prompter: Prompter,
        discovery_timeout_ms: int = defaults.DEFAULT_DISCOVERY_TIMEOUT_MS,
        liveness_port: int = defaults.DEFAULT_LIVENESS_PORT,
        liveness_timeout_ms: int = defaults.DEFAULT_LIVENESS_TIMEOUT_MS,
        max_parallel_probes: int = defaults.DEFAULT_MAX_PARALLEL_PROBES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        stream: TextIO = sys.stderr,
    ) -> None:
        self.discovery = discovery
        self.prompter = prompter
        self.discovery_timeout_ms = discovery_timeout_ms
        self.liveness_port = liveness_port
        self.liveness_timeout_ms = liveness_timeout_ms
        self.max_parallel_probes = max_parallel_probes
        self.stream = stream
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: DiscoveryConfig,
        discovery: DiscoveryService,
        prompter: Prompter,
    ) -> "DeviceLocator":
        """Create a locator from the discovery settings."""
        return cls(
            discovery,
            prompter,
            discovery_timeout_ms=config.timeout_ms,
            liveness_port=config.liveness_port,
            liveness_timeout_ms=config.liveness_timeout_ms,
            max_parallel_probes=config.max_parallel_probes,
        )

    async def locate(self) -> str:
        """Return the address of the device to operate on.

        Raises:
            NoDevicesFound: If no discovered device answers the ping
        """
        with status(
            "Discovering local devices...",
            success_message="==> Reporting discovered devices",
            stream=self.stream,
        ):
            candidates = await self.discovery.discover(self.discovery_timeout_ms)

        responsive = await self.probe_all(candidates)
        logger.debug(
            "Liveness probing finished",
            discovered=len(candidates),
            responsive=[device.to_dict() for device in responsive],
        )

        if not responsive:
            raise NoDevicesFound()

        if len(responsive) == 1:
            address = responsive[0].address
        else:
            # First discovered device, if it answered
            default = next(
                (device for device in responsive if device.address == candidates[0].address),
                None,
            )
            chosen = self.prompter.select_from_list(
                "Select a device",
                responsive,
                label=lambda device: device.label,
                default=default,
            )
            address = chosen.address

        print_info(f"Selected device: {address}", stream=self.stream)
        return address

    async def probe_all(self, candidates: list[CandidateDevice]) -> list[CandidateDevice]:
        """Ping all candidates and return the responsive ones in input order."""
        async with httpx.AsyncClient(
            timeout=self.liveness_timeout_ms / 1000,
            transport=self._transport,
        ) as client:
            results = await gather_with_limit(
                *[self.ping(client, candidate.address) for candidate in candidates],
                limit=self.max_parallel_probes,
                return_exceptions=True,
            )

        return [
            CandidateDevice(address=candidate.address, host=candidate.host, responsive=True)
            for candidate, alive in zip(candidates, results)
            if alive is True
        ]

    async def ping(self, client: httpx.AsyncClient, address: str) -> bool:
        """Check whether the device management port answers."""
        if not address:
            return False
        url = f"http://{address}:{self.liveness_port}/_ping"
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            logger.debug("Device did not answer ping", address=address, error=str(e))
            return False
        return response.is_success
