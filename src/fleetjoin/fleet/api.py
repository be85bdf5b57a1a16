"""Client for the fleet-management API.

The API speaks OData over REST (``/v6/<resource>``) with bearer-token
authentication. FleetApi is the contract the workflows depend on;
HttpFleetApi implements it over httpx.
"""

import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

import httpx

from fleetjoin.config import defaults
from fleetjoin.config.schemas import ApiConfig
from fleetjoin.errors import FleetApiError
from fleetjoin.fleet.models import (
    Actor,
    DeviceRecord,
    DeviceTypeInfo,
    Fleet,
    is_architecture_compatible,
)
from fleetjoin.telemetry.logger import get_logger

logger = get_logger(__name__)

API_VERSION = "v6"

DEVICE_TYPE_EXPAND = "is_of__cpu_architecture($select=slug)"
FLEET_EXPAND = (
    "is_for__device_type($select=slug;$expand=is_of__cpu_architecture($select=slug))"
)


def quote(value: str) -> str:
    """Quote a string literal for an OData filter."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class FleetQuery:
    """Filter for fleets the caller can access directly.

    Attributes:
        name: Exact fleet name
        slug: Exact fully qualified slug (compared lowercased)
        device_types: Restrict to fleets of these device types
        owner: Restrict to fleets under this namespace
    """

    name: Optional[str] = None
    slug: Optional[str] = None
    device_types: Sequence[str] = ()
    owner: Optional[str] = None

    def to_filter(self) -> str:
        """Render the OData ``$filter`` expression."""
        clauses = ["is_directly_accessible_by__user/any(dau:1 eq 1)"]
        if self.name is not None:
            clauses.append(f"app_name eq {quote(self.name)}")
        if self.slug is not None:
            clauses.append(f"slug eq {quote(self.slug.lower())}")
        if self.device_types:
            slugs = ",".join(quote(slug) for slug in self.device_types)
            clauses.append(f"is_for__device_type/any(dt:dt/slug in ({slugs}))")
        if self.owner is not None:
            clauses.append(f"startswith(slug,{quote(self.owner.lower() + '/')})")
        return " and ".join(clauses)


class FleetApi(Protocol):
    """Operations the join/leave workflows need from the platform."""

    async def get_device_type(self, slug: str) -> DeviceTypeInfo: ...

    async def get_all_supported_device_types(self) -> list[DeviceTypeInfo]: ...

    def is_architecture_compatible(self, os_architecture: str, fleet_architecture: str) -> bool: ...

    async def get_fleets(self, query: FleetQuery) -> list[Fleet]: ...

    async def create_fleet(self, name: str, device_type_slug: str, organization: str) -> Fleet: ...

    async def get_fleet(self, fleet_id: int) -> Fleet: ...

    async def get_device_manifest(self, slug: str) -> dict[str, Any]: ...

    async def whoami(self) -> Optional[Actor]: ...

    async def generate_provisioning_key(self, fleet_id: int) -> str: ...

    async def get_device(self, uuid: str) -> DeviceRecord: ...

    async def pin_device_to_release(self, uuid: str, commit: str) -> None: ...

    def get_platform_base_url(self) -> str: ...


class HttpFleetApi:
    """FleetApi implementation over httpx.

    Example:
        async with HttpFleetApi.from_config(config.api) as api:
            fleets = await api.get_fleets(FleetQuery(name="myfleet"))
    """

    def __init__(
        self,
        url: str = defaults.DEFAULT_API_URL,
        token: Optional[str] = None,
        base_url: str = defaults.DEFAULT_BASE_URL,
        timeout: float = defaults.DEFAULT_API_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.token = token
        self.base_url = base_url

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self.url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: ApiConfig) -> "HttpFleetApi":
        """Create a client from the API settings, reading the token from the environment."""
        return cls(
            url=config.url,
            token=os.environ.get(config.token_env) or None,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FleetApiError(
                method,
                path,
                e.response.text.strip() or e.response.reason_phrase,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FleetApiError(method, path, str(e) or type(e).__name__) from e

        logger.debug("API request", method=method, path=path, status=response.status_code)
        if not response.content:
            return None
        return response.json()

    async def _get_resources(self, resource: str, **options: str) -> list[dict[str, Any]]:
        params = {f"${key}": value for key, value in options.items()}
        body = await self._request("GET", f"/{API_VERSION}/{resource}", params=params)
        return body.get("d", []) if body else []

    async def get_device_type(self, slug: str) -> DeviceTypeInfo:
        resources = await self._get_resources(
            "device_type",
            select="id,slug",
            expand=DEVICE_TYPE_EXPAND,
            filter=f"slug eq {quote(slug)}",
        )
        if not resources:
            raise FleetApiError("GET", f"/{API_VERSION}/device_type", f"Device type not found: {slug}", 404)
        return DeviceTypeInfo.from_api(resources[0])

    async def get_all_supported_device_types(self) -> list[DeviceTypeInfo]:
        resources = await self._get_resources(
            "device_type",
            select="slug",
            expand=DEVICE_TYPE_EXPAND,
            filter="is_default_for__application/any(idfa:idfa/is_host eq true)",
        )
        return [DeviceTypeInfo.from_api(resource) for resource in resources]

    def is_architecture_compatible(self, os_architecture: str, fleet_architecture: str) -> bool:
        return is_architecture_compatible(os_architecture, fleet_architecture)

    async def get_fleets(self, query: FleetQuery) -> list[Fleet]:
        resources = await self._get_resources(
            "application",
            select="id,app_name,slug",
            expand=FLEET_EXPAND,
            filter=query.to_filter(),
        )
        return [Fleet.from_api(resource) for resource in resources]

    async def create_fleet(self, name: str, device_type_slug: str, organization: str) -> Fleet:
        device_types = await self._get_resources(
            "device_type", select="id", filter=f"slug eq {quote(device_type_slug)}"
        )
        organizations = await self._get_resources(
            "organization", select="id", filter=f"handle eq {quote(organization)}"
        )
        if not device_types or not organizations:
            raise FleetApiError(
                "POST",
                f"/{API_VERSION}/application",
                f"Unknown device type {device_type_slug!r} or organization {organization!r}",
            )

        body = await self._request(
            "POST",
            f"/{API_VERSION}/application",
            json={
                "app_name": name,
                "is_for__device_type": device_types[0]["id"],
                "organization": organizations[0]["id"],
            },
        )
        logger.info("Created fleet", name=name, device_type=device_type_slug, organization=organization)
        return Fleet.from_api(body)

    async def get_fleet(self, fleet_id: int) -> Fleet:
        body = await self._request(
            "GET",
            f"/{API_VERSION}/application({fleet_id})",
            params={"$select": "id,app_name,slug", "$expand": FLEET_EXPAND},
        )
        resources = body.get("d", []) if body else []
        if not resources:
            raise FleetApiError("GET", f"/{API_VERSION}/application({fleet_id})", "Fleet not found", 404)
        return Fleet.from_api(resources[0])

    async def get_device_manifest(self, slug: str) -> dict[str, Any]:
        return await self._request("GET", f"/device-types/v1/{slug}")

    async def whoami(self) -> Optional[Actor]:
        if not self.token:
            return None
        try:
            body = await self._request("GET", "/actor/v1/whoami")
        except FleetApiError as e:
            # Expired or revoked token
            if e.status_code == 401:
                return None
            raise
        return Actor(id=body["id"], username=body["username"])

    async def generate_provisioning_key(self, fleet_id: int) -> str:
        return await self._request("POST", f"/api-key/application/{fleet_id}/provisioning")

    async def get_device(self, uuid: str) -> DeviceRecord:
        # Full UUIDs match exactly, shorter ones by prefix
        match = f"uuid eq {quote(uuid)}" if len(uuid) in (32, 62) else f"startswith(uuid,{quote(uuid)})"
        resources = await self._get_resources(
            "device",
            select="id,uuid",
            expand=(
                "belongs_to__application($select=id,slug),"
                "should_be_running__release($select=commit)"
            ),
            filter=match,
        )
        if len(resources) != 1:
            reason = "Device not found" if not resources else "Device UUID is ambiguous"
            raise FleetApiError("GET", f"/{API_VERSION}/device", f"{reason}: {uuid}", 404)
        return DeviceRecord.from_api(resources[0])

    async def pin_device_to_release(self, uuid: str, commit: str) -> None:
        device = await self.get_device(uuid)
        releases = await self._get_resources(
            "release",
            select="id,commit",
            filter=(
                f"belongs_to__application eq {device.fleet_id} and "
                f"startswith(commit,{quote(commit)}) and status eq 'success'"
            ),
        )
        if len(releases) != 1:
            reason = "Release not found" if not releases else "Release commit is ambiguous"
            raise FleetApiError("GET", f"/{API_VERSION}/release", f"{reason}: {commit}", 404)

        await self._request(
            "PATCH",
            f"/{API_VERSION}/device({device.id})",
            json={"should_be_running__release": releases[0]["id"]},
        )
        logger.info("Pinned device", uuid=device.uuid, commit=releases[0]["commit"])

    def get_platform_base_url(self) -> str:
        return self.base_url

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpFleetApi":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
