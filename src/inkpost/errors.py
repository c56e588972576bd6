"""Exception hierarchy shared by the store, services and adapters."""

from __future__ import annotations


class InkpostError(Exception):
    """Base class for all inkpost errors."""


class StorageUnavailable(InkpostError):
    """The persistent medium could not be read or written."""


class NotFound(InkpostError):
    """A record targeted by id does not exist."""


class ValidationFailed(InkpostError):
    """User-correctable input error. The message is shown to the user as is."""


class AuthFailed(InkpostError):
    """Login failed.

    The message never says whether the email or the password was wrong.
    """

    GENERIC_MESSAGE = "Invalid email or password"

    def __init__(self, message: str = GENERIC_MESSAGE) -> None:
        super().__init__(message)


class PermissionDenied(InkpostError):
    """The acting user lacks the capability for an action."""


class RemoteBackendError(InkpostError):
    """The remote backend answered with a non-retryable error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
