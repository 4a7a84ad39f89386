"""Domain exceptions raised by the waiting list services."""

from typing import Any


class WaitlistError(Exception):
    """Base class for waiting list domain errors."""

    code = "WAITLIST_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(WaitlistError):
    """Input rejected before any state was changed."""

    code = "VALIDATION_ERROR"


class AuthorizationError(WaitlistError):
    """Actor is not allowed to perform the requested ability."""

    code = "FORBIDDEN"


class NotFoundError(WaitlistError):
    """Entity missing, or membership no longer active."""

    code = "NOT_FOUND"


class ConflictError(WaitlistError):
    """Account already holds an active membership on the list."""

    code = "CONFLICT"
