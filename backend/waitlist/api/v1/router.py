"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from waitlist.api.v1.endpoints import health, waiting_lists

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(waiting_lists.router, prefix="/waiting-lists", tags=["Waiting Lists"])
