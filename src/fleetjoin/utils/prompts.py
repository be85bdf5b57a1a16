"""Interactive prompts and dynamic forms.

Device-type manifests describe their configurable options as loosely typed
JSON. They are converted to OptionDescriptor lists here and rendered by
run_form() through any Prompter implementation.
"""

import getpass
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, TypeVar

from fleetjoin.errors import PromptAborted
from fleetjoin.telemetry.logger import get_logger
from fleetjoin.utils.validators import ValidationResult, validate_number

logger = get_logger(__name__)

T = TypeVar("T")

Validator = Callable[[Any], ValidationResult]


class Prompter(Protocol):
    """Renders questions to a human and returns the answers."""

    def ask(
        self,
        message: str,
        default: Optional[str] = None,
        validate: Optional[Validator] = None,
        secret: bool = False,
    ) -> str: ...

    def select_from_list(
        self,
        message: str,
        items: Sequence[T],
        label: Callable[[T], str] = str,
        default: Optional[T] = None,
    ) -> T: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...


def confirm_or_abort(prompter: Prompter, message: str, default: bool = False) -> None:
    """Ask for confirmation and raise PromptAborted if declined."""
    if not prompter.confirm(message, default):
        raise PromptAborted()


class ConsolePrompter:
    """Line-based prompter reading from stdin.

    Example:
        prompter = ConsolePrompter()
        name = prompter.ask("Enter a name for your new fleet:", default="lab")
    """

    def __init__(
        self,
        input_func: Optional[Callable[[], str]] = None,
        output_func: Optional[Callable[[str], None]] = None,
        secret_input_func: Optional[Callable[[], str]] = None,
    ) -> None:
        """Initialize the prompter.

        Args:
            input_func: Custom input function (for testing)
            output_func: Custom output function (for testing)
            secret_input_func: Custom non-echoing input function (for testing)
        """
        self._input = input_func or self._default_input
        self._output = output_func or self._default_output
        self._secret_input = secret_input_func or self._default_secret_input

    def _default_input(self) -> str:
        return input()

    def _default_secret_input(self) -> str:
        return getpass.getpass("")

    def _default_output(self, text: str) -> None:
        print(text, file=sys.stderr)

    def _read(self, secret: bool = False) -> str:
        try:
            # Passwords keep surrounding whitespace
            if secret:
                return self._secret_input()
            return self._input().strip()
        except EOFError:
            raise PromptAborted("Input stream closed") from None

    def ask(
        self,
        message: str,
        default: Optional[str] = None,
        validate: Optional[Validator] = None,
        secret: bool = False,
    ) -> str:
        suffix = f" [{default}]" if default not in (None, "") and not secret else ""
        while True:
            self._output(f"? {message}{suffix}")
            answer = self._read(secret) or (default or "")
            if validate:
                result = validate(answer)
                if not result.valid:
                    self._output(f">> {result.message}")
                    continue
            return answer

    def select_from_list(
        self,
        message: str,
        items: Sequence[T],
        label: Callable[[T], str] = str,
        default: Optional[T] = None,
    ) -> T:
        if not items:
            raise ValueError("Cannot select from an empty list")

        default_index = items.index(default) if default in items else 0
        while True:
            self._output(f"? {message}")
            for index, item in enumerate(items, start=1):
                marker = ">" if index - 1 == default_index else " "
                self._output(f" {marker} {index}) {label(item)}")
            self._output(f"  Choice [{default_index + 1}]:")

            answer = self._read()
            if not answer:
                return items[default_index]
            if answer.isdigit() and 1 <= int(answer) <= len(items):
                return items[int(answer) - 1]
            self._output(f">> Please enter a number between 1 and {len(items)}")

    def confirm(self, message: str, default: bool = False) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            self._output(f"? {message} ({hint})")
            answer = self._read().lower()
            if not answer:
                return default
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False


class OptionType(str, Enum):
    """Kinds of form fields a manifest can declare."""

    TEXT = "text"
    NUMBER = "number"
    PASSWORD = "password"
    LIST = "list"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class OptionDescriptor:
    """One field of a dynamic form.

    Attributes:
        name: Key the answer is stored under
        type: Kind of field
        message: Question shown to the user
        default: Default answer
        choices: Allowed answers for list fields
        validate: Extra validation of the answer
        when: Only ask when every listed earlier answer matches
    """

    name: str
    type: OptionType = OptionType.TEXT
    message: str = ""
    default: Any = None
    choices: tuple[Any, ...] = ()
    validate: Optional[Validator] = None
    when: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_manifest(cls, data: Mapping[str, Any]) -> "OptionDescriptor":
        """Build a descriptor from one manifest option entry."""
        try:
            option_type = OptionType(data.get("type", "text"))
        except ValueError:
            option_type = OptionType.TEXT

        validate: Optional[Validator] = None
        if option_type == OptionType.NUMBER:
            minimum = data.get("min")
            validate = lambda value: validate_number(value, minimum)  # noqa: E731

        choices = tuple(
            choice["value"] if isinstance(choice, Mapping) else choice
            for choice in data.get("choices", [])
        )

        return cls(
            name=data["name"],
            type=option_type,
            message=data.get("message", data["name"]),
            default=data.get("default"),
            choices=choices,
            validate=validate,
            when=dict(data.get("when") or {}),
        )


def options_from_manifest(
    options: Sequence[Mapping[str, Any]],
    exclude: Sequence[str] = (),
) -> list[OptionDescriptor]:
    """Flatten manifest options into descriptors.

    Group entries (``isGroup``) contribute their children. Top-level
    entries named in ``exclude`` are dropped together with their children.
    """
    descriptors: list[OptionDescriptor] = []

    def visit(entries: Sequence[Mapping[str, Any]]) -> None:
        for entry in entries:
            if entry.get("isGroup"):
                visit(entry.get("options", []))
            elif "name" in entry:
                descriptors.append(OptionDescriptor.from_manifest(entry))

    visit([entry for entry in options if entry.get("name") not in exclude])
    return descriptors


def run_form(
    prompter: Prompter,
    options: Sequence[OptionDescriptor],
    override: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Collect answers for a form.

    Options with a non-None value in ``override`` are not asked; the
    override is used as the answer.

    Returns:
        Mapping of option name to answer
    """
    override = override or {}
    answers: dict[str, Any] = {}

    for option in options:
        if any(answers.get(key) != value for key, value in option.when.items()):
            continue

        if override.get(option.name) is not None:
            answers[option.name] = override[option.name]
            continue

        answers[option.name] = _ask_option(prompter, option)

    logger.debug("Form completed", fields=list(answers))
    return answers


def _ask_option(prompter: Prompter, option: OptionDescriptor) -> Any:
    if option.type == OptionType.CONFIRM:
        return prompter.confirm(option.message, bool(option.default))

    if option.type == OptionType.LIST and option.choices:
        default = option.default if option.default in option.choices else None
        return prompter.select_from_list(option.message, list(option.choices), default=default)

    default = None if option.default is None else str(option.default)
    answer = prompter.ask(
        option.message,
        default=default,
        validate=option.validate,
        secret=option.type == OptionType.PASSWORD,
    )
    if option.type == OptionType.NUMBER:
        number = float(answer)
        return int(number) if number.is_integer() else number
    return answer
