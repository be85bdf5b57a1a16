"""Interactive fleet creation."""

import sys
from typing import Optional, TextIO

from fleetjoin.errors import NotLoggedIn
from fleetjoin.fleet.api import FleetApi, FleetQuery
from fleetjoin.fleet.models import Fleet
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.prompts import Prompter
from fleetjoin.utils.validators import validate_fleet_name
from fleetjoin.utils.ux import print_warning

logger = get_logger(__name__)


class FleetCreator:
    """Creates a fleet under the caller's namespace.

    The user is asked for a name until one is free; a failed lookup is an
    error, not a free name.
    """

    def __init__(self, api: FleetApi, prompter: Prompter, stream: TextIO = sys.stderr) -> None:
        self.api = api
        self.prompter = prompter
        self.stream = stream

    async def create(self, device_type_slug: str, default_name: Optional[str] = None) -> Fleet:
        """Create a fleet for ``device_type_slug`` and return it with its device type expanded.

        Raises:
            NotLoggedIn: If the caller is not authenticated
        """
        actor = await self.api.whoami()
        if actor is None:
            raise NotLoggedIn()

        name = default_name
        while True:
            name = self.prompter.ask(
                "Enter a name for your new fleet:",
                default=name,
                validate=validate_fleet_name,
            )
            # Names only need to be unique within the namespace
            existing = await self.api.get_fleets(FleetQuery(name=name, owner=actor.username))
            if existing:
                print_warning(
                    "You already have a fleet with that name; please choose another.",
                    stream=self.stream,
                )
                continue
            break

        # Creation returns the bare resource; refetch for the expanded device type
        created = await self.api.create_fleet(name, device_type_slug, actor.username)
        logger.debug("Fleet created", fleet_id=created.id, name=name)
        return await self.api.get_fleet(created.id)
