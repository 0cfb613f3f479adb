"""Health check endpoint for application monitoring."""

import logging
from typing import Any

from fastapi import FastAPI, Request

from echostats import __version__
from echostats.config import Settings
from echostats.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


def register_health_endpoints(app: FastAPI, settings: Settings) -> None:
    """Register /health on the FastAPI application.

    Args:
        app: FastAPI application instance
        settings: Application settings
    """

    # Liveness plus configuration status. No upstream calls - missing Spotify credentials
    # show up as "degraded" so an operator sees it before the first login fails.
    @app.get(
        "/health",
        tags=["Health"],
        summary="Basic health check",
        response_description="Application health status",
    )
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint.

        Example response:
            {
                "status": "healthy",
                "app_name": "echostats",
                "version": "0.1.0",
                "spotify_configured": true,
                ...
            }
        """
        token_manager = getattr(request.app.state, "token_manager", None)
        return {
            "status": "healthy" if settings.spotify.is_configured else "degraded",
            "app_name": settings.app_name,
            "version": __version__,
            "spotify_configured": settings.spotify.is_configured,
            "fetch_policy": settings.stats.fetch_policy.value,
            "timezone": settings.stats.timezone,
            "refreshes_in_flight": token_manager.in_flight_count() if token_manager else 0,
            "http_pool": HttpClientPool.get_pool_stats(),
        }
