"""Device records used during a single join/leave invocation."""

import re
from dataclasses import dataclass
from typing import Any, Optional

from fleetjoin.errors import ProbeError

_RECORD_LINE = re.compile(r'^([A-Z0-9_]+)="([^"]*)"[ \t\r]*$', re.MULTILINE)


@dataclass(frozen=True)
class CandidateDevice:
    """A device found by local discovery.

    Attributes:
        address: IP address or hostname used to reach the device
        host: Advertised hostname, if any
        responsive: Whether the device answered the liveness ping
    """

    address: str
    host: Optional[str] = None
    responsive: bool = False

    @property
    def label(self) -> str:
        """Display name shown when choosing between devices."""
        return f"{self.host or 'untitled'} ({self.address})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "address": self.address,
            "host": self.host,
            "responsive": self.responsive,
        }


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY="value"`` lines of an identity record.

    Lines in any other form are ignored.
    """
    return {key: value for key, value in _RECORD_LINE.findall(text)}


def record_value(record: dict[str, str], key: str, what: str) -> str:
    """Return a required field of a parsed identity record."""
    value = record.get(key)
    if not value:
        raise ProbeError(f"Failed to determine {what}")
    return value

