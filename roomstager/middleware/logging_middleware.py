"""
Request logging middleware with correlation IDs for request tracing.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable to store request ID across async calls
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a request ID to each request, reusing the caller's X-Request-ID if sent
    2. Logs request start/end with timing
    3. Returns the ID in the X-Request-ID header
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, "")[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())[:8]
        request_id_var.set(request_id)

        path = request.url.path
        start_time = time.time()
        logger.info(
            f"[{request_id}] → {request.method} {path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "event": "request_start",
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] ✗ Error: {str(e)[:100]} ({duration_ms:.0f}ms)",
                extra={
                    "request_id": request_id,
                    "error": str(e),
                    "duration_ms": duration_ms,
                    "event": "request_error",
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        log_level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            log_level,
            f"[{request_id}] ← {response.status_code} ({duration_ms:.0f}ms)",
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "event": "request_end",
            },
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
