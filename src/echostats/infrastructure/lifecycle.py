"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager that wires the
app-wide objects onto app.state and releases the HTTP pool on shutdown.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from echostats.application.services.spotify_auth_service import SpotifyAuthService
from echostats.application.services.token_manager import TokenManager
from echostats.config import Settings, get_settings
from echostats.infrastructure.integrations.http_pool import HttpClientPool
from echostats.infrastructure.integrations.spotify_client import SpotifyClient
from echostats.infrastructure.observability import configure_logging

logger = logging.getLogger(__name__)


# Hey future me, this runs ONCE when the server starts and cleans up when it stops.
# There is no database and no background worker - the only app-wide state is the
# Spotify client and the TokenManager (its in-flight refresh map MUST be shared by all
# requests, otherwise single-flight does nothing). The try/finally makes sure the
# HTTP pool is closed even if startup fails halfway.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Spotify client and token manager creation
    - HTTP pool cleanup
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    try:
        if not settings.spotify.is_configured:
            # Not fatal: reported as ConfigurationError on the first token operation
            logger.warning(
                "Spotify client credentials are not configured "
                "(SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET). Login will fail until they are set."
            )

        spotify_client = SpotifyClient(settings.spotify)
        app.state.spotify_client = spotify_client
        app.state.token_manager = TokenManager(SpotifyAuthService(spotify_client))
        logger.info(
            "Stats service ready (window=%sh, session gap=%smin, timezone=%s, fetch policy=%s)",
            f"{settings.stats.recent_window_hours:g}",
            f"{settings.stats.session_gap_minutes:g}",
            settings.stats.timezone,
            settings.stats.fetch_policy.value,
        )

        yield

    finally:
        logger.info("Shutting down application")
        await HttpClientPool.close()
