"""Exception handlers producing one error envelope for every failure."""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from waitlist.common.request_id import get_request_id
from waitlist.core.app_exceptions import AppError, status_for_domain_error
from waitlist.core.config import settings
from waitlist.core.exceptions import WaitlistError
from waitlist.core.logging import get_logger

logger = get_logger(__name__)


class ErrorResponse(BaseModel):
    """Error response envelope.

    Format: {error_code, message, details, request_id}
    """

    error_code: str
    message: str
    details: Any | None = None
    request_id: str | None = None


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        details=details,
        request_id=get_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query failed schema validation (422)."""
    details = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "issue": error.get("msg", "Validation error"),
            "type": error.get("type", "validation_error"),
        }
        for error in exc.errors()
    ]
    return _error_response(
        request, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", "Invalid request data", details
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc, AppError):
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error_response(
        request, exc.status_code, "HTTP_ERROR", message, headers=getattr(exc, "headers", None)
    )


async def waitlist_exception_handler(request: Request, exc: WaitlistError) -> JSONResponse:
    """Map domain errors raised by the services onto HTTP statuses."""
    status_code = status_for_domain_error(exc)
    logger.info(
        "Domain error %s on %s",
        exc.code,
        request.url.path,
        extra={"status_code": status_code},
    )
    return _error_response(request, status_code, exc.code, exc.message, exc.details)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions (500). Internals are hidden in production."""
    logger.error("Unhandled exception on %s", request.url.path, exc_info=exc)

    if settings.ENV == "prod":
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "An internal server error occurred"
        )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        str(exc),
        {"type": type(exc).__name__},
    )
