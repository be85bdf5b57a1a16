"""Console output helpers.

Provides the spinner used while talking to devices, one-line status
messages, and the formatter the CLI uses to render expected errors.
"""

import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generator, Optional, TextIO


class Color(str, Enum):
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def colorize(text: str, *colors: Color, use_color: bool = True) -> str:
    """Apply ANSI colors to text.

    Args:
        text: Text to colorize
        *colors: Colors to apply
        use_color: Whether to actually apply colors

    Returns:
        Colorized text string
    """
    if not use_color or not colors:
        return text
    color_codes = "".join(c.value for c in colors)
    return f"{color_codes}{text}{Color.RESET.value}"


SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]


class Spinner:
    """Animated spinner for indicating progress.

    The message may be updated from any thread while the spinner runs,
    which is how remote command output drives the status line.

    Example:
        with Spinner("[10.0.0.2] Connecting...") as spinner:
            spinner.update("[10.0.0.2] Configuring...")
    """

    def __init__(
        self,
        message: str = "",
        stream: TextIO = sys.stderr,
        use_color: bool = True,
    ) -> None:
        self.message = message
        self.stream = stream
        self.use_color = use_color

        self._frame_idx = 0
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._interval = 0.1

    @property
    def running(self) -> bool:
        """Whether the animation thread is active."""
        return self._running

    def start(self) -> "Spinner":
        """Start the spinner animation."""
        if self._running:
            return self

        self._running = True
        self._thread = threading.Thread(target=self._animate, daemon=True)
        self._thread.start()
        return self

    def stop(self, final_message: Optional[str] = None) -> None:
        """Stop the spinner animation.

        Args:
            final_message: Optional message to display when stopped
        """
        self._running = False
        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        self._clear_line()

        if final_message:
            self.stream.write(f"{final_message}\n")
            self.stream.flush()

    def update(self, message: str) -> None:
        """Update the spinner message."""
        self.message = message

    def _animate(self) -> None:
        while self._running:
            frame = SPINNER_FRAMES[self._frame_idx]
            self._frame_idx = (self._frame_idx + 1) % len(SPINNER_FRAMES)

            spinner_text = colorize(frame, Color.CYAN, use_color=self.use_color)
            self.stream.write(f"\r\033[K{spinner_text} {self.message}")
            self.stream.flush()

            time.sleep(self._interval)

    def _clear_line(self) -> None:
        self.stream.write("\r\033[K")
        self.stream.flush()

    def __enter__(self) -> "Spinner":
        return self.start()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.stop()


@contextmanager
def status(
    message: str,
    success_message: Optional[str] = None,
    stream: TextIO = sys.stderr,
    use_color: bool = True,
) -> Generator[Spinner, None, None]:
    """Context manager for status indication with spinner.

    Args:
        message: Initial status message
        success_message: Message printed when the block completes
        stream: Output stream
        use_color: Whether to use colors

    Yields:
        Spinner instance for updating status
    """
    spinner = Spinner(message, stream=stream, use_color=use_color)
    spinner.start()

    try:
        yield spinner
    except BaseException:
        spinner.stop()
        raise
    spinner.stop(success_message)


def print_success(message: str, stream: TextIO = sys.stdout, use_color: bool = True) -> None:
    """Print a success message."""
    prefix = colorize("✓", Color.GREEN, use_color=use_color)
    stream.write(f"{prefix} {message}\n")
    stream.flush()


def print_warning(message: str, stream: TextIO = sys.stderr, use_color: bool = True) -> None:
    """Print a warning message."""
    prefix = colorize("⚠", Color.YELLOW, use_color=use_color)
    stream.write(f"{prefix} {message}\n")
    stream.flush()


def print_error(message: str, stream: TextIO = sys.stderr, use_color: bool = True) -> None:
    """Print an error message."""
    prefix = colorize("✗", Color.RED, use_color=use_color)
    stream.write(f"{prefix} {message}\n")
    stream.flush()


def print_info(message: str, stream: TextIO = sys.stderr, use_color: bool = True) -> None:
    """Print an informational progress line."""
    prefix = colorize("==>", Color.BLUE, use_color=use_color)
    stream.write(f"{prefix} {message}\n")
    stream.flush()


@dataclass
class ErrorContext:
    """Context for user-friendly error messages."""

    error_type: str
    message: str
    suggestion: Optional[str] = None
    details: Optional[str] = None


class ErrorFormatter:
    """Format errors in a user-friendly way.

    Example:
        formatter = ErrorFormatter()
        print(formatter.format_exception(NoDevicesFound()))
    """

    def __init__(self, use_color: bool = True) -> None:
        self.use_color = use_color

    def format(self, ctx: ErrorContext) -> str:
        """Format an error context.

        Args:
            ctx: Error context to format

        Returns:
            Formatted error string
        """
        lines: list[str] = []

        header = colorize(f"✗ {ctx.error_type}", Color.RED, Color.BOLD, use_color=self.use_color)
        lines.append(header)
        lines.append("")

        for line in ctx.message.split("\n"):
            lines.append(f"  {line}")
        lines.append("")

        if ctx.details:
            lines.append(colorize("  Details:", Color.DIM, use_color=self.use_color))
            for line in ctx.details.split("\n"):
                lines.append(colorize(f"    {line}", Color.DIM, use_color=self.use_color))
            lines.append("")

        if ctx.suggestion:
            suggestion = colorize("  Suggestion: ", Color.YELLOW, use_color=self.use_color)
            lines.append(f"{suggestion}{ctx.suggestion}")
            lines.append("")

        return "\n".join(lines)

    def format_exception(
        self,
        exc: Exception,
        suggestion: Optional[str] = None,
    ) -> str:
        """Format an exception, using its own suggestion when it has one.

        Remote command failures show the captured standard error as details.
        """
        ctx = ErrorContext(
            error_type=type(exc).__name__,
            message=str(exc),
            details=(getattr(exc, "stderr", "") or "").strip() or None,
            suggestion=suggestion or getattr(exc, "suggestion", None) or get_error_suggestion(exc),
        )
        return self.format(ctx)


# Suggestions for errors that do not carry their own
ERROR_SUGGESTIONS = {
    "RemoteExecError": "Check that the device is reachable over SSH on its local port.",
    "FleetApiError": "Check your network connection and API token, then try again.",
    "FileNotFoundError": "The specified file does not exist. Check the path and try again.",
}


def get_error_suggestion(exc: Exception) -> Optional[str]:
    """Get a suggestion for an exception type."""
    return ERROR_SUGGESTIONS.get(type(exc).__name__)
