"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from fleetjoin.config.schemas import FleetJoinConfig
from fleetjoin.errors import FleetApiError, RemoteExecError
from fleetjoin.fleet.api import FleetQuery
from fleetjoin.fleet.models import (
    Actor,
    DeviceRecord,
    DeviceTypeInfo,
    Fleet,
    is_architecture_compatible,
)

OS_RELEASE = """ID="balena-os"
NAME="balenaOS"
VERSION="2.101.7"
VERSION_ID="2.101.7"
PRETTY_NAME="balenaOS 2.101.7"
MACHINE="raspberrypi4-64"
VARIANT="Development"
VARIANT_ID="dev"
META_BALENA_VERSION="2.101.7"
RESIN_BOARD_REV="a0a7d48"
META_RESIN_REV="0b9d8c7"
SLUG="raspberrypi4-64"
"""

DEVICE_TYPES = [
    DeviceTypeInfo(slug="raspberrypi4-64", architecture="aarch64"),
    DeviceTypeInfo(slug="raspberrypi3", architecture="armv7hf"),
    DeviceTypeInfo(slug="raspberry-pi", architecture="rpi"),
    DeviceTypeInfo(slug="intel-nuc", architecture="amd64"),
]


def build_fleet(fleet_id: int, slug: str, device_type: str) -> Fleet:
    """Create a fleet whose name is the part of the slug after '/'."""
    return Fleet(
        id=fleet_id,
        name=slug.split("/", 1)[1],
        slug=slug,
        device_type_slug=device_type,
        architecture_slug=next(
            (dt.architecture for dt in DEVICE_TYPES if dt.slug == device_type), None
        ),
    )


class ScriptedPrompter:
    """Prompter that replays scripted answers and records every question."""

    def __init__(
        self,
        answers: Sequence[str] = (),
        selections: Sequence[int] = (),
        confirms: Sequence[bool] = (),
    ) -> None:
        self.answers = list(answers)
        self.selections = list(selections)
        self.confirms = list(confirms)
        self.asked: list[tuple[str, Optional[str]]] = []
        self.selects: list[tuple[str, list[str], Optional[str]]] = []
        self.confirmations: list[str] = []

    def ask(
        self,
        message: str,
        default: Optional[str] = None,
        validate: Optional[Callable[[Any], Any]] = None,
        secret: bool = False,
    ) -> str:
        self.asked.append((message, default))
        if self.answers:
            return self.answers.pop(0)
        return default or ""

    def select_from_list(
        self,
        message: str,
        items: Sequence[Any],
        label: Callable[[Any], str] = str,
        default: Optional[Any] = None,
    ) -> Any:
        self.selects.append((
            message,
            [label(item) for item in items],
            None if default is None else label(default),
        ))
        if self.selections:
            return items[self.selections.pop(0)]
        return default if default in items else items[0]

    def confirm(self, message: str, default: bool = False) -> bool:
        self.confirmations.append(message)
        return self.confirms.pop(0) if self.confirms else default


class FakeFleetApi:
    """In-memory fleet-management API."""

    def __init__(
        self,
        fleets: Sequence[Fleet] = (),
        actor: Optional[Actor] = Actor(id=7, username="myorg"),
        manifest: Optional[dict[str, Any]] = None,
        base_url: str = "balena-cloud.com",
    ) -> None:
        self.device_types = {dt.slug: dt for dt in DEVICE_TYPES}
        self.fleets = list(fleets)
        self.actor = actor
        self.manifest = manifest if manifest is not None else {"options": []}
        self.base_url = base_url
        self.queries: list[FleetQuery] = []
        self.created: list[tuple[str, str, str]] = []
        self.pinned: list[tuple[str, str]] = []
        self.fail_queries = False

    async def __aenter__(self) -> "FakeFleetApi":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass

    async def get_device_type(self, slug: str) -> DeviceTypeInfo:
        return self.device_types[slug]

    async def get_all_supported_device_types(self) -> list[DeviceTypeInfo]:
        return list(self.device_types.values())

    def is_architecture_compatible(self, os_architecture: str, fleet_architecture: str) -> bool:
        return is_architecture_compatible(os_architecture, fleet_architecture)

    async def get_fleets(self, query: FleetQuery) -> list[Fleet]:
        self.queries.append(query)
        if self.fail_queries:
            raise FleetApiError("GET", "/v6/application", "Internal Server Error", 500)
        result = list(self.fleets)
        if query.name is not None:
            result = [f for f in result if f.name == query.name]
        if query.slug is not None:
            result = [f for f in result if f.slug == query.slug.lower()]
        if query.device_types:
            result = [f for f in result if f.device_type_slug in query.device_types]
        if query.owner is not None:
            result = [f for f in result if f.slug.startswith(query.owner.lower() + "/")]
        return result

    async def create_fleet(self, name: str, device_type_slug: str, organization: str) -> Fleet:
        self.created.append((name, device_type_slug, organization))
        fleet = build_fleet(100 + len(self.created), f"{organization.lower()}/{name}", device_type_slug)
        self.fleets.append(fleet)
        return Fleet(id=fleet.id, name=fleet.name, slug=fleet.slug, device_type_slug="")

    async def get_fleet(self, fleet_id: int) -> Fleet:
        return next(fleet for fleet in self.fleets if fleet.id == fleet_id)

    async def get_device_manifest(self, slug: str) -> dict[str, Any]:
        return self.manifest

    async def whoami(self) -> Optional[Actor]:
        return self.actor

    async def generate_provisioning_key(self, fleet_id: int) -> str:
        return "provisioning-key"

    async def get_device(self, uuid: str) -> DeviceRecord:
        return DeviceRecord(id=1, uuid=uuid, fleet_id=1, fleet_slug="myorg/myfleet", pinned_commit=None)

    async def pin_device_to_release(self, uuid: str, commit: str) -> None:
        self.pinned.append((uuid, commit))

    def get_platform_base_url(self) -> str:
        return self.base_url


class FakeExecClient:
    """Remote exec client that records commands instead of running them."""

    def __init__(self, os_release: str = OS_RELEASE, fail_prefixes: Sequence[str] = ()) -> None:
        self.os_release = os_release
        self.fail_prefixes = tuple(fail_prefixes)
        self.commands: list[tuple[str, str]] = []
        self.closed = False

    def exec(self, address: str, command: str, output_sink: Optional[Callable[[str], None]] = None) -> str:
        self.commands.append((address, command))
        if self.fail_prefixes and command.startswith(self.fail_prefixes):
            raise RemoteExecError(address, command, "Command exited with code 127", exit_code=127)
        if output_sink:
            output_sink("applying\n")
        if command == "cat /etc/os-release":
            return self.os_release
        return "os-config 1.2.0\n"

    async def exec_async(
        self,
        address: str,
        command: str,
        output_sink: Optional[Callable[[str], None]] = None,
    ) -> str:
        return self.exec(address, command, output_sink)

    async def read_os_release(self, address: str) -> str:
        return await self.exec_async(address, "cat /etc/os-release")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def test_config() -> FleetJoinConfig:
    """Create a test configuration."""
    return FleetJoinConfig()


@pytest.fixture
def prompter() -> ScriptedPrompter:
    """Prompter with no scripted answers."""
    return ScriptedPrompter()


@pytest.fixture
def make_prompter() -> Callable[..., ScriptedPrompter]:
    """Factory for prompters with scripted answers, selections and confirms."""
    return ScriptedPrompter


@pytest.fixture
def fleet_api() -> FakeFleetApi:
    """Empty in-memory fleet API."""
    return FakeFleetApi()


@pytest.fixture
def make_fleet_api() -> Callable[..., FakeFleetApi]:
    """Factory for in-memory fleet APIs."""
    return FakeFleetApi


@pytest.fixture
def make_fleet() -> Callable[[int, str, str], Fleet]:
    """Factory for fleets named after their slug."""
    return build_fleet


@pytest.fixture
def exec_client() -> FakeExecClient:
    """Exec client for a raspberrypi4-64 running 2.101.7."""
    return FakeExecClient()


@pytest.fixture
def make_exec_client() -> Callable[..., FakeExecClient]:
    """Factory for recording exec clients."""
    return FakeExecClient


@pytest.fixture
def os_release() -> str:
    """Identity record of a raspberrypi4-64 development image."""
    return OS_RELEASE


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
api:
  url: https://api.example.com/
  base_url: example.com

ssh:
  port: 22

discovery:
  timeout_ms: 1000

log_level: DEBUG
""")
    return config_file
