"""Expected errors raised by the join/leave workflows.

Every error a user can act on derives from FleetJoinError. The CLI renders
these with their suggestion instead of a traceback.
"""

from typing import Optional


class FleetJoinError(Exception):
    """Base class for expected, user-facing errors."""

    suggestion: Optional[str] = None

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if suggestion is not None:
            self.suggestion = suggestion


class NoDevicesFound(FleetJoinError):
    """Discovery or liveness probing yielded no responsive device."""

    suggestion = (
        "Make sure the device is powered on and on the same network, "
        "then retry or pass the device address explicitly."
    )

    def __init__(self, message: str = "Could not find any local devices") -> None:
        super().__init__(message)


class CompatibilityError(FleetJoinError):
    """The device cannot run the configuration tool."""

    def __init__(self, address: str, command: str, min_version: str) -> None:
        super().__init__(
            f'Failed to execute "{command}" on device "{address}".\n'
            "Depending on more specific error messages above, this may mean that "
            "the device is incompatible. Please ensure that the device is running "
            f"an OS release newer than {min_version}.",
        )
        self.address = address
        self.command = command
        self.min_version = min_version


class ProbeError(FleetJoinError):
    """The device identity record is missing an expected field."""

    suggestion = "The device may be running a corrupted or unsupported OS image."


class NoMatchingFleet(FleetJoinError):
    """A fleet name resolved, but none of the matches fit the device type."""

    suggestion = "Pick a different fleet or a device of a compatible type."

    def __init__(self, message: str = "No fleet found with a matching device type") -> None:
        super().__init__(message)


class NotLoggedIn(FleetJoinError):
    """An operation needs an authenticated identity and none is present."""

    suggestion = "Set an API token in the configured token environment variable."

    def __init__(self, message: str = "You have to log in to continue") -> None:
        super().__init__(message)


class PromptAborted(FleetJoinError):
    """The user declined a confirmation or the input stream closed."""

    def __init__(self, message: str = "Aborted") -> None:
        super().__init__(message)


class RemoteExecError(FleetJoinError):
    """A command could not be run on the device, or exited non-zero.

    Attributes:
        address: Device address
        command: Command that was executed
        exit_code: Remote exit code, None when the transport failed
        stderr: Captured standard error
    """

    def __init__(
        self,
        address: str,
        command: str,
        reason: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(f"[{address}] {reason}")
        self.address = address
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class FleetApiError(FleetJoinError):
    """A fleet-management API request failed.

    Attributes:
        method: HTTP method
        path: Request path
        status_code: Response status, None for transport failures
    """

    def __init__(
        self,
        method: str,
        path: str,
        reason: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{method} {path} failed: {reason}")
        self.method = method
        self.path = path
        self.status_code = status_code
