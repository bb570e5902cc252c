"""Logging middleware for request tracking."""
import re
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = structlog.get_logger(__name__)

# Accept a caller-supplied request id only if it looks like one
_REQUEST_ID_PATTERN = re.compile(r'^[A-Za-z0-9-]{8,64}$')

# Heartbeats arrive every few seconds per holder; log them at debug level
_QUIET_PATH_PATTERN = re.compile(r'^/api/v1/holds/[^/]+/heartbeat$')


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with request IDs."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    @staticmethod
    def _request_id(request: Request) -> str:
        incoming = request.headers.get("X-Request-ID", "")
        if _REQUEST_ID_PATTERN.match(incoming):
            return incoming
        return str(uuid.uuid4())

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        request_id = self._request_id(request)
        request.state.request_id = request_id

        # Available to every log line emitted while handling this request
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        log = logger.debug if _QUIET_PATH_PATTERN.match(request.url.path) else logger.info
        start_time = time.perf_counter()

        log(
            "request_started",
            query_params=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                exception=str(exc),
                exception_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        response.headers["X-Request-ID"] = request_id

        # For SSE this measures time to first byte, not stream lifetime
        log(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )

        return response
