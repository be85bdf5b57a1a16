"""Tests for device records and identity parsing."""

import pytest

from fleetjoin.errors import ProbeError
from fleetjoin.orchestrator.devices import CandidateDevice, parse_os_release, record_value


class TestCandidateDevice:
    """Tests for CandidateDevice."""

    def test_label_with_host(self) -> None:
        """Should show host and address."""
        device = CandidateDevice(address="192.168.1.50", host="a1b2c3d")
        assert device.label == "a1b2c3d (192.168.1.50)"

    def test_label_without_host(self) -> None:
        """Should fall back to 'untitled'."""
        assert CandidateDevice(address="192.168.1.50").label == "untitled (192.168.1.50)"

    def test_to_dict(self) -> None:
        """Should serialize all fields."""
        data = CandidateDevice(address="10.0.0.2", responsive=True).to_dict()
        assert data == {"address": "10.0.0.2", "host": None, "responsive": True}


class TestParseOsRelease:
    """Tests for parse_os_release."""

    def test_parses_quoted_lines(self, os_release: str) -> None:
        """Should return every KEY="value" pair."""
        record = parse_os_release(os_release)
        assert record["SLUG"] == "raspberrypi4-64"
        assert record["VERSION_ID"] == "2.101.7"
        assert record["VARIANT"] == "Development"

    def test_ignores_other_lines(self) -> None:
        """Unquoted and malformed lines are skipped."""
        record = parse_os_release('SLUG=intel-nuc\n# comment\nVERSION_ID="2.88.4"\n')
        assert record == {"VERSION_ID": "2.88.4"}

    def test_trailing_carriage_return(self) -> None:
        """CRLF line endings are accepted."""
        record = parse_os_release('SLUG="intel-nuc"\r\nVERSION_ID="2.88.4"\r\n')
        assert record == {"SLUG": "intel-nuc", "VERSION_ID": "2.88.4"}

    def test_empty_value(self) -> None:
        """Empty quoted values parse as empty strings."""
        assert parse_os_release('SLUG=""\n') == {"SLUG": ""}


class TestRecordValue:
    """Tests for record_value."""

    def test_present(self) -> None:
        """Should return the value."""
        assert record_value({"SLUG": "intel-nuc"}, "SLUG", "device type") == "intel-nuc"

    def test_missing(self) -> None:
        """Should raise ProbeError naming the field."""
        with pytest.raises(ProbeError, match="Failed to determine device type"):
            record_value({}, "SLUG", "device type")

    def test_empty(self) -> None:
        """An empty value counts as missing."""
        with pytest.raises(ProbeError, match="Failed to determine OS version ID"):
            record_value({"VERSION_ID": ""}, "VERSION_ID", "OS version ID")
