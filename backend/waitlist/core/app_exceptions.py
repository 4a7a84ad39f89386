"""Application-specific exceptions for consistent error handling."""

from typing import Any

from fastapi import HTTPException, status

from waitlist.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    WaitlistError,
)

# Domain error -> HTTP status
DOMAIN_ERROR_STATUS: dict[type[WaitlistError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


class AppError(HTTPException):
    """Application error with standardized error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize application error."""
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
        )
        self.code = code
        self.message = message
        self.details = details


def raise_app_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | list[Any] | None = None,
) -> None:
    """Raise an application error with standardized format."""
    raise AppError(status_code=status_code, code=code, message=message, details=details)


def status_for_domain_error(exc: WaitlistError) -> int:
    """Resolve the HTTP status for a domain error (walks the MRO)."""
    for klass in type(exc).__mro__:
        if klass in DOMAIN_ERROR_STATUS:
            return DOMAIN_ERROR_STATUS[klass]
    return status.HTTP_400_BAD_REQUEST
