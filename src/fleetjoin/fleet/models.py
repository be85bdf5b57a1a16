"""Fleet and device-type records returned by the fleet-management API."""

from dataclasses import dataclass, replace
from typing import Any, Optional

# Architectures that can run binaries built for other architectures
ARCHITECTURE_COMPATIBILITY: dict[str, tuple[str, ...]] = {
    "aarch64": ("armv7hf", "rpi"),
    "armv7hf": ("rpi",),
}


def is_architecture_compatible(os_architecture: str, fleet_architecture: str) -> bool:
    """Whether a device of ``os_architecture`` can run ``fleet_architecture`` builds."""
    return os_architecture == fleet_architecture or (
        fleet_architecture in ARCHITECTURE_COMPATIBILITY.get(os_architecture, ())
    )


@dataclass(frozen=True)
class DeviceTypeInfo:
    """A device type and the CPU architecture it belongs to."""

    slug: str
    architecture: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DeviceTypeInfo":
        """Create from an API resource with the architecture expanded."""
        return cls(
            slug=data["slug"],
            architecture=_expanded(data.get("is_of__cpu_architecture"), "slug") or "",
        )


@dataclass(frozen=True)
class Fleet:
    """A fleet (application) that devices join.

    Attributes:
        id: Fleet identifier
        name: Display name
        slug: Fully qualified ``namespace/name`` slug
        device_type_slug: Default device type of the fleet
        architecture_slug: CPU architecture of that device type
    """

    id: int
    name: str
    slug: str
    device_type_slug: str
    architecture_slug: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Fleet":
        """Create from an API resource with the device type expanded."""
        device_type = _first(data.get("is_for__device_type")) or {}
        return cls(
            id=data["id"],
            name=data["app_name"],
            slug=data["slug"],
            device_type_slug=device_type.get("slug", ""),
            architecture_slug=_expanded(device_type.get("is_of__cpu_architecture"), "slug"),
        )

    def with_device_type(self, device_type_slug: str) -> "Fleet":
        """Return a copy bound to another device type. Nothing is persisted."""
        return replace(self, device_type_slug=device_type_slug)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "device_type_slug": self.device_type_slug,
            "architecture_slug": self.architecture_slug,
        }


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    id: int
    username: str


@dataclass(frozen=True)
class DeviceRecord:
    """A registered device and the release it is pinned to."""

    id: int
    uuid: str
    fleet_id: Optional[int]
    fleet_slug: Optional[str]
    pinned_commit: Optional[str]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DeviceRecord":
        """Create from an API resource with fleet and release expanded."""
        fleet = _first(data.get("belongs_to__application")) or {}
        return cls(
            id=data["id"],
            uuid=data["uuid"],
            fleet_id=fleet.get("id"),
            fleet_slug=fleet.get("slug"),
            pinned_commit=_expanded(data.get("should_be_running__release"), "commit"),
        )


def _first(value: Any) -> Optional[dict[str, Any]]:
    """Unwrap a navigation property, which the API returns as a list or a dict."""
    if isinstance(value, list):
        return value[0] if value else None
    if isinstance(value, dict):
        return value
    return None


def _expanded(value: Any, key: str) -> Optional[Any]:
    item = _first(value)
    return item.get(key) if item else None
