"""Device configuration payload generation."""

from typing import Any, Optional

from fleetjoin.config import defaults
from fleetjoin.config.schemas import ConnectivityMode
from fleetjoin.errors import NotLoggedIn
from fleetjoin.fleet.api import FleetApi
from fleetjoin.fleet.models import Actor, Fleet
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.prompts import Prompter, options_from_manifest, run_form

logger = get_logger(__name__)

# Network options are configured out-of-band, never through this form
EXCLUDED_OPTIONS = ("network",)

# Keys only meaningful to network-connected configuration methods
NETWORK_ONLY_KEYS = ("connectivity", "files")

SUPERVISOR_LISTEN_PORT = 48484
VPN_PORT = 443

NETWORK_SETTINGS = """[global]
OfflineMode=false
TimeUpdates=manual

[WiFi]
Enable=true
Tethering=false

[Wired]
Enable=true
Tethering=false

[Bluetooth]
Enable=true
Tethering=false"""

NETWORK_CONFIG_TEMPLATE = """[service_home_ethernet]
Type = ethernet
Nameservers = 8.8.8.8,8.8.4.4

[service_home_wifi]
Hidden = true
Type = wifi
Name = {ssid}
Passphrase = {key}
Nameservers = 8.8.8.8,8.8.4.4"""


def network_files(values: dict[str, Any]) -> Optional[dict[str, str]]:
    """Connection-manager files for a Wi-Fi network, if one was configured."""
    ssid = values.get("wifiSsid")
    if not ssid:
        return None
    return {
        "network/settings": NETWORK_SETTINGS,
        "network/network.config": NETWORK_CONFIG_TEMPLATE.format(
            ssid=ssid, key=values.get("wifiKey", "")
        ),
    }


def strip_network_keys(config: dict[str, Any]) -> dict[str, Any]:
    """Drop network-only keys when the payload targets the offline connection manager."""
    if config.get("connectivity") != ConnectivityMode.CONNMAN.value:
        return config
    return {key: value for key, value in config.items() if key not in NETWORK_ONLY_KEYS}


class ConfigGenerator:
    """Builds the payload that associates a device with a fleet.

    Values are merged in increasing precedence: answers to the device
    type's manifest options (with caller overrides), then the probed OS
    version, then fleet association data.
    """

    def __init__(
        self,
        api: FleetApi,
        prompter: Prompter,
        connectivity: ConnectivityMode = ConnectivityMode.CONNMAN,
        default_poll_interval: int = defaults.DEFAULT_POLL_INTERVAL_MINUTES,
    ) -> None:
        self.api = api
        self.prompter = prompter
        self.connectivity = connectivity
        self.default_poll_interval = default_poll_interval

    async def collect_values(
        self,
        fleet: Fleet,
        os_version: str,
        app_update_poll_interval: Optional[int] = None,
    ) -> dict[str, Any]:
        """Ask for the device type's options and merge in the OS version."""
        manifest = await self.api.get_device_manifest(fleet.device_type_slug)
        options = options_from_manifest(manifest.get("options") or [], exclude=EXCLUDED_OPTIONS)

        values: dict[str, Any] = {}
        if options:
            values.update(
                run_form(
                    self.prompter,
                    options,
                    override={"appUpdatePollInterval": app_update_poll_interval},
                )
            )
        elif app_update_poll_interval is not None:
            values["appUpdatePollInterval"] = app_update_poll_interval
        values["osVersion"] = os_version
        return values

    async def generate(
        self,
        fleet: Fleet,
        os_version: str,
        app_update_poll_interval: Optional[int] = None,
    ) -> dict[str, Any]:
        """Return the configuration payload for ``fleet``.

        Raises:
            NotLoggedIn: If the caller is not authenticated
        """
        values = await self.collect_values(fleet, os_version, app_update_poll_interval)

        actor = await self.api.whoami()
        if actor is None:
            raise NotLoggedIn()
        api_key = await self.api.generate_provisioning_key(fleet.id)

        config = self.build(fleet, values, actor, api_key)
        return strip_network_keys(config)

    def build(
        self,
        fleet: Fleet,
        values: dict[str, Any],
        actor: Actor,
        api_key: str,
    ) -> dict[str, Any]:
        """Assemble the full payload before connectivity trimming."""
        base_url = self.api.get_platform_base_url()
        poll_minutes = values.get("appUpdatePollInterval") or self.default_poll_interval

        config: dict[str, Any] = dict(values)
        config.update(
            {
                "applicationId": fleet.id,
                "applicationName": fleet.name,
                "deviceType": fleet.device_type_slug,
                "userId": actor.id,
                "username": actor.username,
                "apiKey": api_key,
                "apiEndpoint": f"https://api.{base_url}",
                "vpnEndpoint": f"cloudlink.{base_url}",
                "registryEndpoint": f"registry2.{base_url}",
                "deltaEndpoint": f"https://delta.{base_url}",
                "listenPort": SUPERVISOR_LISTEN_PORT,
                "vpnPort": VPN_PORT,
                "appUpdatePollInterval": int(float(poll_minutes) * 60000),
                "osVersion": values["osVersion"],
                "connectivity": values.get("connectivity") or self.connectivity.value,
            }
        )

        files = network_files(values)
        if files:
            config["files"] = files
        return config
