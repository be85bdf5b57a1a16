"""Structured logging for fleetjoin."""

from fleetjoin.telemetry.logger import (
    bind_context,
    get_logger,
    redact_secrets,
    setup_logging,
    unbind_context,
)

__all__ = [
    "bind_context",
    "get_logger",
    "redact_secrets",
    "setup_logging",
    "unbind_context",
]
