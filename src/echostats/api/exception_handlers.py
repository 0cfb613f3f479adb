"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
and validation errors into JSON responses of the shape {"error": "<message>"}.

Hey future me - the dashboard only distinguishes TWO outcomes: "re-authenticate"
(401) and "retry later" (everything else). Upstream status codes and bodies are
logged here but never put into a response body.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from echostats.domain.exceptions import (
    AggregationError,
    ConfigurationError,
    UpstreamAuthError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Drop raw inputs from pydantic errors; they can hold bytes or tokens."""
    return [
        {key: value for key, value in error.items() if key not in ("input", "ctx", "url")}
        for error in errors
    ]


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build an {"error": message} JSON response."""
    return JSONResponse(status_code=status_code, content={"error": message})


# Hey future me, these are GLOBAL handlers - routers only catch what they map differently
# (auth routes turn UpstreamAuthError into 500, the stats route turns everything into
# "Failed to fetch stats"). Everything else lands here. Register BEFORE the app serves requests.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions and request validation errors.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle caller input errors with 400 (or 401 for a missing bearer token)."""
        logger.info(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle missing server configuration with 500."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Server configuration error: {exc.message}",
        )

    @app.exception_handler(UpstreamAuthError)
    async def upstream_auth_error_handler(
        request: Request, exc: UpstreamAuthError
    ) -> JSONResponse:
        """Handle terminal auth failures with 401 - the client must log in again."""
        logger.warning(
            "Re-authentication required at %s: %s (upstream status %s)",
            request.url.path,
            exc.message,
            exc.http_status,
            extra={"path": request.url.path, "upstream_status": exc.http_status},
        )
        return error_response(status.HTTP_401_UNAUTHORIZED, "Re-authentication required")

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        """Handle upstream failures (incl. 429) with 500."""
        logger.error(
            "Upstream error at %s: %s (status %s, endpoint %s)",
            request.url.path,
            exc.message,
            exc.http_status,
            exc.endpoint,
            extra={
                "path": request.url.path,
                "upstream_status": exc.http_status,
                "endpoint": exc.endpoint,
            },
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Upstream service error")

    @app.exception_handler(AggregationError)
    async def aggregation_error_handler(
        request: Request, exc: AggregationError
    ) -> JSONResponse:
        logger.error("Aggregation error at %s: %s", request.url.path, exc.message)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch stats")

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed request bodies/params with 400."""
        sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
        logger.warning(
            "Request validation error at %s: %s",
            request.url.path,
            sanitized_errors,
            extra={"path": request.url.path, "errors": sanitized_errors},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "details": sanitized_errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Render HTTPException as {"error": detail} with proper logging."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "HTTP error %d at %s: %s",
            exc.status_code,
            request.url.path,
            exc.detail,
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "detail": exc.detail,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
