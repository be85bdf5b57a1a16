"""Validation of user-entered values."""

import math
from dataclasses import dataclass
from typing import Any, Optional

MIN_FLEET_NAME_LENGTH = 4


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        valid: Whether validation passed
        message: Error message if invalid
    """

    valid: bool
    message: Optional[str] = None


def validate_fleet_name(name: str) -> ValidationResult:
    """Check a new fleet name against the platform naming rules."""
    if len(name.strip()) < MIN_FLEET_NAME_LENGTH:
        return ValidationResult(
            False,
            f"The fleet name should be at least {MIN_FLEET_NAME_LENGTH} characters long",
        )
    if "/" in name:
        return ValidationResult(False, "The fleet name cannot contain '/'")
    return ValidationResult(True)


def validate_number(value: Any, minimum: Optional[float] = None) -> ValidationResult:
    """Check that a form value is a number, optionally above a minimum."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ValidationResult(False, f"{value!r} is not a number")
    if not math.isfinite(number):
        return ValidationResult(False, f"{value!r} is not a finite number")
    if minimum is not None and number < minimum:
        return ValidationResult(False, f"Value must be at least {minimum:g}")
    return ValidationResult(True)
