"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from waitlist.api.v1.router import api_router
from waitlist.common.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from waitlist.core.config import settings
from waitlist.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    waitlist_exception_handler,
)
from waitlist.core.exceptions import WaitlistError
from waitlist.core.logging import get_logger, setup_logging
from waitlist.db.base import Base
from waitlist.db.engine import engine

VERSION = "1.0.0"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Dev convenience only; other environments run `alembic upgrade head`
    if settings.ENV == "dev":
        Base.metadata.create_all(bind=engine)
    logger.info("%s started", settings.PROJECT_NAME, extra={"env": settings.ENV})
    yield
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    docs_enabled = settings.ENV != "prod"
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        description="Admin API for training waiting lists",
        openapi_url="/openapi.json" if docs_enabled else None,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Last added is outermost: CORS wraps the request id middleware
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(WaitlistError, waitlist_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": VERSION,
            "docs_url": "/docs" if docs_enabled else None,
        }

    return app


app = create_app()
