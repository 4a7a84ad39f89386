"""Pagination helpers for the admin tables."""

from __future__ import annotations

from typing import Generic, TypeVar

from fastapi import Query, status
from pydantic import BaseModel, Field

from waitlist.core.app_exceptions import raise_app_error
from waitlist.core.config import settings

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Page-based pagination; page_size limited to the configured options."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=settings.WAITLIST_DEFAULT_PAGE_SIZE, ge=1)


class PaginatedResponse(BaseModel, Generic[T]):
    """Page-based pagination response."""

    items: list[T]
    page: int
    page_size: int
    total: int


def pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(
        settings.WAITLIST_DEFAULT_PAGE_SIZE, ge=1, description="Page size (one of the configured options)"
    ),
) -> PaginationParams:
    """Dependency for page-based pagination."""
    if page_size not in settings.WAITLIST_PAGE_SIZES:
        raise_app_error(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_PAGE_SIZE",
            f"page_size must be one of {settings.WAITLIST_PAGE_SIZES}",
            details={"page_size": page_size, "allowed": settings.WAITLIST_PAGE_SIZES},
        )
    return PaginationParams(page=page, page_size=page_size)
