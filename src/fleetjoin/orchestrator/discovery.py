"""Adapters that produce local device candidates.

The mDNS transport itself belongs to the zeroconf library; this module
only browses for a service type and reports what answered.
"""

import threading
import time
from typing import Optional, Protocol, Sequence

from zeroconf import IPVersion, ServiceBrowser, ServiceListener, Zeroconf

from fleetjoin.config import defaults
from fleetjoin.orchestrator.devices import CandidateDevice
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.async_utils import run_in_executor

logger = get_logger(__name__)

_RESOLVE_TIMEOUT_MS = 1000


class DiscoveryService(Protocol):
    """Finds devices on the local network."""

    async def discover(self, timeout_ms: int) -> list[CandidateDevice]: ...


class StaticDiscovery:
    """Reports a fixed set of addresses as discovered."""

    def __init__(self, addresses: Sequence[str]) -> None:
        self.addresses = list(addresses)

    async def discover(self, timeout_ms: int) -> list[CandidateDevice]:
        return [CandidateDevice(address=address) for address in self.addresses]


class _NameCollector(ServiceListener):
    """Records service instance names in the order they were announced."""

    def __init__(self) -> None:
        self.names: list[str] = []
        self._lock = threading.Lock()

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        with self._lock:
            if name not in self.names:
                self.names.append(name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.add_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        pass


class ZeroconfDiscovery:
    """Browses an mDNS service type for local devices.

    Example:
        discovery = ZeroconfDiscovery("_resin-device._sub._ssh._tcp.local.")
        candidates = await discovery.discover(timeout_ms=4000)
    """

    def __init__(self, service_type: str = defaults.DEFAULT_SERVICE_TYPE) -> None:
        self.service_type = service_type

    async def discover(self, timeout_ms: int) -> list[CandidateDevice]:
        return await run_in_executor(self._browse, timeout_ms)

    def _browse(self, timeout_ms: int) -> list[CandidateDevice]:
        deadline = time.monotonic() + timeout_ms / 1000
        zc = Zeroconf()
        try:
            collector = _NameCollector()
            browser = ServiceBrowser(zc, self.service_type, collector)
            # Leave part of the window for resolving what was announced
            time.sleep(max(timeout_ms - _RESOLVE_TIMEOUT_MS, timeout_ms // 2) / 1000)
            browser.cancel()

            candidates: list[CandidateDevice] = []
            seen: set[str] = set()
            resolve_type = _base_type(self.service_type)
            for name in list(collector.names):
                remaining_ms = int((deadline - time.monotonic()) * 1000)
                if remaining_ms <= 0:
                    logger.debug("Discovery window closed", unresolved=name)
                    break
                info = zc.get_service_info(resolve_type, name, timeout=remaining_ms)
                if info is None:
                    logger.debug("Could not resolve service", name=name)
                    continue
                host = _hostname(info.server)
                for address in info.parsed_addresses(IPVersion.V4Only):
                    if address in seen:
                        continue
                    seen.add(address)
                    candidates.append(CandidateDevice(address=address, host=host))
        finally:
            zc.close()

        logger.debug("Discovery finished", found=len(candidates))
        return candidates


def _base_type(service_type: str) -> str:
    # Instances are named under the base type, not the subtype
    return service_type.split("._sub.", 1)[-1]


def _hostname(server: Optional[str]) -> Optional[str]:
    if not server:
        return None
    host = server.rstrip(".")
    return host[: -len(".local")] if host.endswith(".local") else host
