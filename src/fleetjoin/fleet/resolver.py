"""Resolving the fleet a device should join.

A name given by the user always wins over device-type compatibility when
counting candidates: compatibility filtering runs after the name lookup,
and an incompatible sole match is rejected rather than used.
"""

import asyncio
from typing import Optional

from fleetjoin.errors import NoMatchingFleet
from fleetjoin.fleet.api import FleetApi, FleetQuery
from fleetjoin.fleet.creator import FleetCreator
from fleetjoin.fleet.models import Fleet
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.prompts import Prompter, confirm_or_abort

logger = get_logger(__name__)


class FleetResolver:
    """Finds, disambiguates or creates the target fleet.

    Example:
        resolver = FleetResolver(api, ConsolePrompter())
        fleet = await resolver.resolve("raspberrypi4-64", "myorg/myfleet")
    """

    def __init__(
        self,
        api: FleetApi,
        prompter: Prompter,
        creator: Optional[FleetCreator] = None,
    ) -> None:
        self.api = api
        self.prompter = prompter
        self.creator = creator or FleetCreator(api, prompter)

    async def resolve(self, device_type_slug: str, fleet_name: Optional[str] = None) -> Fleet:
        """Return exactly one fleet compatible with ``device_type_slug``.

        Args:
            device_type_slug: Probed device type
            fleet_name: Fleet name or ``namespace/name`` slug, if given

        Raises:
            NoMatchingFleet: If the named fleets all have incompatible device types
            PromptAborted: If the user declines to create a fleet
        """
        compatible = await self.compatible_device_types(device_type_slug)
        logger.debug("Compatible device types", device_type=device_type_slug, compatible=compatible)

        if not fleet_name:
            return await self._select_or_create(device_type_slug, compatible)

        # "namespace/name" is a slug, anything else a bare name
        if "/" in fleet_name:
            query = FleetQuery(slug=fleet_name)
            display_name = fleet_name.split("/", 1)[1]
        else:
            query = FleetQuery(name=fleet_name)
            display_name = fleet_name

        fleets = await self.api.get_fleets(query)
        if not fleets:
            confirm_or_abort(
                self.prompter,
                f'No fleet found with name "{fleet_name}".\nWould you like to create it now?',
            )
            return await self.creator.create(device_type_slug, display_name)

        # Compatibility is checked only after the name lookup
        valid = [fleet for fleet in fleets if fleet.device_type_slug in compatible]
        if not valid:
            raise NoMatchingFleet()
        if len(valid) == 1:
            return valid[0]
        return self._select(valid)

    async def compatible_device_types(self, device_type_slug: str) -> list[str]:
        """Slugs of every supported device type the device can run builds of."""
        device_type, all_types = await asyncio.gather(
            self.api.get_device_type(device_type_slug),
            self.api.get_all_supported_device_types(),
        )
        return [
            candidate.slug
            for candidate in all_types
            if self.api.is_architecture_compatible(device_type.architecture, candidate.architecture)
        ]

    async def _select_or_create(self, device_type_slug: str, compatible: list[str]) -> Fleet:
        # Server-side filter is a hint; recheck locally
        fleets = [
            fleet
            for fleet in await self.api.get_fleets(FleetQuery(device_types=tuple(compatible)))
            if fleet.device_type_slug in compatible
        ]
        if not fleets:
            confirm_or_abort(
                self.prompter,
                "You have no fleets this device can join.\nWould you like to create one now?",
            )
            return await self.creator.create(device_type_slug)

        return self._select(fleets)

    def _select(self, fleets: list[Fleet]) -> Fleet:
        return self.prompter.select_from_list("Select fleet", fleets, label=lambda fleet: fleet.slug)
