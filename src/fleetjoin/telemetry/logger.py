"""Structured logging setup using structlog.

Log events may carry device payloads and API responses, so every event
passes through redact_secrets() before it is rendered.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

# Event keys whose values never reach a log sink
SECRET_KEYS = frozenset({"apiKey", "wifiKey", "token", "password", "provisioning_key"})

REDACTED = "<redacted>"

# Libraries that log every packet or request at DEBUG
NOISY_LOGGERS = ("paramiko", "zeroconf", "httpx", "httpcore")


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if key in SECRET_KEYS else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(item) for item in value)
    return value


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace secret values in an event, including inside nested payloads."""
    return _redact(event_dict)


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    json_format: bool = False,
) -> None:
    """Configure structured logging for the CLI.

    Console output goes to stderr so it never mixes with command output
    written to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        json_format: Whether to use JSON format (True) or console format (False)
    """
    # Convert level string to logging level
    log_level = getattr(logging, level.upper(), logging.WARNING)

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        stream=sys.stderr,
    )

    # Transport chatter stays out of --log-level DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))

    # Build processor chain
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Colors only on an interactive terminal
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Set up file handler if log file specified
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind workflow context (command, device address) to later log events."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove workflow context keys once a workflow ends."""
    structlog.contextvars.unbind_contextvars(*keys)
