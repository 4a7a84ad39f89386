"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from waitlist.common.request_id import get_request_id
from waitlist.core.logging import get_logger
from waitlist.db.session import get_db

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])

REQUIRED_TABLES = (
    "accounts",
    "waiting_lists",
    "waiting_list_account",
    "waiting_list_flags",
    "waiting_list_account_flag",
)


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""

    status: Literal["ok", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: Literal["ok", "down"]
    checks: dict[str, ReadinessCheck]
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def health_check() -> HealthResponse:
    """Health check endpoint - just checks if the process is alive."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    responses={503: {"model": ReadinessResponse}},
)
def readiness_check(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> ReadinessResponse:
    """Database reachable and waiting list schema migrated."""
    checks: dict[str, ReadinessCheck] = {}

    try:
        db.execute(text("SELECT 1"))
        checks["db"] = ReadinessCheck(status="ok")
        missing = [table for table in REQUIRED_TABLES if not inspect(db.connection()).has_table(table)]
        checks["schema"] = (
            ReadinessCheck(status="down", message=f"Missing tables: {', '.join(missing)}")
            if missing
            else ReadinessCheck(status="ok")
        )
    except SQLAlchemyError as e:
        logger.warning("Readiness DB check failed", extra={"error": str(e)})
        checks["db"] = ReadinessCheck(status="down", message=str(e))

    overall_status: Literal["ok", "down"] = (
        "ok" if all(check.status == "ok" for check in checks.values()) else "down"
    )
    if overall_status == "down":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=overall_status,
        checks=checks,
        request_id=get_request_id(request),
    )
