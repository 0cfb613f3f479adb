"""Middleware for observability: request/response logging."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from echostats.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

# Never logged, even at DEBUG: they carry bearer/refresh tokens
_SENSITIVE_HEADERS = frozenset({"authorization", "x-refresh-token", "cookie"})


# Hey future me, this middleware logs EVERY HTTP request once, on completion. It sets the
# correlation ID first so all logs of the request (including the fan-out calls) inherit it.
# log_request_headers is for local debugging only; sensitive headers are always masked.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    def __init__(self, app: ASGIApp, log_request_headers: bool = False) -> None:
        """Initialize middleware.

        Args:
            app: ASGI application
            log_request_headers: Whether to log (masked) request headers
        """
        super().__init__(app)
        self.log_request_headers = log_request_headers

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log details.

        Args:
            request: Incoming request
            call_next: Next middleware/handler in chain

        Returns:
            Response from application
        """
        correlation_id = request.headers.get("X-Correlation-ID")
        set_correlation_id(correlation_id)

        method = request.method
        path = request.url.path

        if self.log_request_headers:
            logger.debug(
                f"→ {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "headers": {
                        key: ("***" if key.lower() in _SENSITIVE_HEADERS else value)
                        for key, value in request.headers.items()
                    },
                },
            )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.exception(
                f"Request failed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_seconds": duration,
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        status_emoji = "✓" if response.status_code < 400 else "✗"
        logger.info(
            f"{status_emoji} {method} {path} → {response.status_code} ({duration_ms:.0f}ms)",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": int(duration_ms),
            },
        )

        response.headers["X-Correlation-ID"] = get_correlation_id()
        return response
