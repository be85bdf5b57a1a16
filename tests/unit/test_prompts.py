"""Tests for interactive prompts and dynamic forms."""

from unittest.mock import patch

import pytest

from fleetjoin.errors import PromptAborted
from fleetjoin.utils.prompts import (
    ConsolePrompter,
    OptionDescriptor,
    OptionType,
    confirm_or_abort,
    options_from_manifest,
    run_form,
)
from fleetjoin.utils.validators import validate_fleet_name

MANIFEST_OPTIONS = [
    {
        "isGroup": True,
        "name": "network",
        "message": "Network",
        "options": [
            {"message": "Network Connection", "name": "network", "type": "list", "choices": ["ethernet", "wifi"]},
            {"message": "Wifi SSID", "name": "wifiSsid", "type": "text", "when": {"network": "wifi"}},
        ],
    },
    {
        "isGroup": True,
        "name": "advanced",
        "message": "Advanced",
        "isCollapsed": True,
        "options": [
            {
                "message": "Check for updates every X minutes",
                "name": "appUpdatePollInterval",
                "type": "number",
                "min": 10,
                "default": 10,
            },
            {"message": "Processor core", "name": "processorCore", "type": "list", "choices": ["a53", "a72"], "default": "a72"},
        ],
    },
]


def make_console(lines: list[str]) -> tuple[ConsolePrompter, list[str]]:
    """Console prompter fed from a list of input lines."""
    output: list[str] = []
    remaining = list(lines)

    def read() -> str:
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return ConsolePrompter(input_func=read, output_func=output.append), output


class TestConsolePrompter:
    """Tests for the line-based prompter."""

    def test_ask_returns_answer(self) -> None:
        """Should return the typed answer."""
        prompter, _ = make_console(["lab-fleet"])
        assert prompter.ask("Name?") == "lab-fleet"

    def test_ask_uses_default_on_empty(self) -> None:
        """Empty input selects the default."""
        prompter, output = make_console([""])
        assert prompter.ask("Name?", default="lab-fleet") == "lab-fleet"
        assert output[0] == "? Name? [lab-fleet]"

    def test_ask_reprompts_until_valid(self) -> None:
        """Invalid answers are reported and asked again."""
        prompter, output = make_console(["abc", "abcd"])

        assert prompter.ask("Name?", validate=validate_fleet_name) == "abcd"
        assert any("at least 4 characters" in line for line in output)

    def test_ask_on_closed_input(self) -> None:
        """A closed input stream aborts the prompt."""
        prompter, _ = make_console([])
        with pytest.raises(PromptAborted):
            prompter.ask("Name?")

    def test_secret_ask_does_not_echo(self) -> None:
        """Secret answers come from the non-echoing reader, unstripped."""
        output: list[str] = []

        def echoing_read() -> str:
            raise AssertionError("secret prompt used the echoing reader")

        prompter = ConsolePrompter(
            input_func=echoing_read,
            output_func=output.append,
            secret_input_func=lambda: " hunter2 ",
        )

        assert prompter.ask("Wi-Fi key", default="old", secret=True) == " hunter2 "
        assert output == ["? Wi-Fi key"]

    def test_secret_ask_uses_getpass_by_default(self) -> None:
        """Without a secret reader the terminal password prompt is used."""
        prompter = ConsolePrompter(input_func=lambda: "", output_func=lambda line: None)

        with patch("fleetjoin.utils.prompts.getpass.getpass", return_value="hunter2") as getpass_mock:
            assert prompter.ask("Wi-Fi key", secret=True) == "hunter2"

        getpass_mock.assert_called_once()

    def test_select_by_number(self) -> None:
        """Should return the item with the chosen number."""
        prompter, output = make_console(["2"])
        assert prompter.select_from_list("Pick", ["a", "b", "c"]) == "b"
        assert " > 1) a" in output

    def test_select_default(self) -> None:
        """Empty input picks the default item."""
        prompter, _ = make_console([""])
        assert prompter.select_from_list("Pick", ["a", "b", "c"], default="c") == "c"

    def test_select_rejects_out_of_range(self) -> None:
        """Out of range numbers are asked again."""
        prompter, _ = make_console(["9", "1"])
        assert prompter.select_from_list("Pick", ["a", "b"]) == "a"

    def test_select_uses_label(self) -> None:
        """Items are rendered with the label function."""
        prompter, output = make_console(["1"])
        prompter.select_from_list("Pick", [{"slug": "myorg/a"}], label=lambda item: item["slug"])
        assert " > 1) myorg/a" in output

    def test_select_empty_list(self) -> None:
        """Selecting from nothing is a programming error."""
        prompter, _ = make_console([])
        with pytest.raises(ValueError):
            prompter.select_from_list("Pick", [])

    def test_confirm(self) -> None:
        """Should parse yes/no answers and fall back to the default."""
        prompter, _ = make_console(["y", "no", ""])
        assert prompter.confirm("Sure?") is True
        assert prompter.confirm("Sure?") is False
        assert prompter.confirm("Sure?", default=True) is True


class TestConfirmOrAbort:
    """Tests for confirm_or_abort."""

    def test_declined(self, make_prompter) -> None:
        """Declining raises PromptAborted."""
        with pytest.raises(PromptAborted):
            confirm_or_abort(make_prompter(confirms=[False]), "Create?")

    def test_accepted(self, make_prompter) -> None:
        """Accepting returns normally."""
        confirm_or_abort(make_prompter(confirms=[True]), "Create?")


class TestOptionsFromManifest:
    """Tests for manifest option conversion."""

    def test_groups_are_flattened(self) -> None:
        """Group children become top-level descriptors."""
        names = [option.name for option in options_from_manifest(MANIFEST_OPTIONS)]
        assert names == ["network", "wifiSsid", "appUpdatePollInterval", "processorCore"]

    def test_excluded_group_is_dropped(self) -> None:
        """Excluding 'network' drops the group and its children."""
        names = [option.name for option in options_from_manifest(MANIFEST_OPTIONS, exclude=("network",))]
        assert names == ["appUpdatePollInterval", "processorCore"]

    def test_excluded_plain_option_is_dropped(self) -> None:
        """Excluding also applies to a non-group option."""
        options = [{"name": "network", "type": "text"}, {"name": "hostname", "type": "text"}]
        names = [option.name for option in options_from_manifest(options, exclude=("network",))]
        assert names == ["hostname"]

    def test_descriptor_fields(self) -> None:
        """Type, default and choices are carried over."""
        option = OptionDescriptor.from_manifest(
            {"name": "core", "type": "list", "choices": [{"name": "A53", "value": "a53"}, "a72"], "default": "a72"}
        )
        assert option.type == OptionType.LIST
        assert option.choices == ("a53", "a72")
        assert option.default == "a72"

    def test_unknown_type_is_text(self) -> None:
        """Unknown option types are asked as text."""
        assert OptionDescriptor.from_manifest({"name": "x", "type": "color"}).type == OptionType.TEXT

    def test_number_minimum_validation(self) -> None:
        """Number options validate their minimum."""
        option = OptionDescriptor.from_manifest({"name": "n", "type": "number", "min": 10})
        assert option.validate("5").valid is False
        assert option.validate("15").valid is True


class TestRunForm:
    """Tests for run_form."""

    def test_override_skips_question(self, make_prompter) -> None:
        """Overridden options are not asked."""
        prompter = make_prompter(selections=[1])
        options = options_from_manifest(MANIFEST_OPTIONS, exclude=("network",))

        answers = run_form(prompter, options, override={"appUpdatePollInterval": 30})

        assert answers == {"appUpdatePollInterval": 30, "processorCore": "a72"}
        assert prompter.asked == []
        assert prompter.selects == [("Processor core", ["a53", "a72"], "a72")]

    def test_none_override_still_asks(self, make_prompter) -> None:
        """A None override means the option is asked."""
        prompter = make_prompter(answers=["20"])
        options = [OptionDescriptor(name="appUpdatePollInterval", type=OptionType.NUMBER, default=10)]

        answers = run_form(prompter, options, override={"appUpdatePollInterval": None})

        assert answers == {"appUpdatePollInterval": 20}
        assert prompter.asked == [("", "10")]

    def test_when_condition(self, make_prompter) -> None:
        """Conditional options are skipped unless earlier answers match."""
        prompter = make_prompter(answers=["home"], selections=[1])
        options = options_from_manifest(MANIFEST_OPTIONS[:1])

        answers = run_form(prompter, options)

        assert answers == {"network": "wifi", "wifiSsid": "home"}

    def test_when_condition_not_met(self, make_prompter) -> None:
        """A conditional option is not asked when its condition fails."""
        prompter = make_prompter(selections=[0])
        options = options_from_manifest(MANIFEST_OPTIONS[:1])

        assert run_form(prompter, options) == {"network": "ethernet"}
        assert prompter.asked == []

    def test_confirm_option(self, make_prompter) -> None:
        """Confirm options use the confirm prompt."""
        prompter = make_prompter(confirms=[True])
        options = [OptionDescriptor(name="persistentLogging", type=OptionType.CONFIRM, message="Persist logs?")]

        assert run_form(prompter, options) == {"persistentLogging": True}
        assert prompter.confirmations == ["Persist logs?"]
