"""Request ID propagation.

The middleware stores the id on request.state and in a context variable, so
log records emitted from services (which never see the Request) carry it too.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from waitlist.core.logging import get_logger, request_id_ctx

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


def get_request_id(request: Request | None = None) -> str:
    """Current request id; a fresh one when called outside a request."""
    if request is not None and getattr(request.state, "request_id", None):
        return request.state.request_id
    return request_id_ctx.get() or str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Accept or mint an X-Request-ID and echo it on the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                extra={"method": request.method, "path": request.url.path, "status_code": 500},
            )
            raise
        finally:
            latency_ms = int((time.perf_counter() - started) * 1000)
            request_id_ctx.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %d",
            request.method,
            request.url.path,
            response.status_code,
            extra={"request_id": request_id, "status_code": response.status_code, "latency_ms": latency_ms},
        )
        return response
