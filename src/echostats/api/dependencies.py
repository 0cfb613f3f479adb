"""Dependency injection for API endpoints."""

import logging
from typing import cast

from fastapi import Depends, Header, HTTPException, Request

from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.listening_aggregator import (
    AggregationConfig,
    ListeningAggregator,
)
from echostats.application.services.snapshot_fetcher import SnapshotFetcher
from echostats.application.services.stats_service import ListeningStatsService
from echostats.application.services.token_manager import TokenManager
from echostats.config import Settings, get_settings
from echostats.domain.exceptions import ValidationError
from echostats.domain.value_objects.recency_window import RecencyWindow
from echostats.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


# Hey future me, the TokenManager is ONE instance per app (created in lifecycle.py and attached
# to app.state). It owns the in-flight refresh map - a per-request instance would make
# single-flight useless. If it isn't on app.state the lifespan didn't run: 503, not a crash.
def get_token_manager(request: Request) -> TokenManager:
    """Get the app-wide token manager from app state.

    Raises:
        HTTPException: 503 if the token manager is not initialized
    """
    if not hasattr(request.app.state, "token_manager"):
        raise HTTPException(
            status_code=503,
            detail="Token manager not initialized. Check app startup logs.",
        )
    return cast(TokenManager, request.app.state.token_manager)


def get_spotify_client(request: Request) -> SpotifyClient:
    """Get the app-wide Spotify client from app state."""
    if not hasattr(request.app.state, "spotify_client"):
        raise HTTPException(
            status_code=503,
            detail="Spotify client not initialized. Check app startup logs.",
        )
    return cast(SpotifyClient, request.app.state.spotify_client)


def get_aggregator(settings: Settings = Depends(get_settings)) -> ListeningAggregator:
    """Build the aggregator from the [stats] settings section."""
    stats = settings.stats
    return ListeningAggregator(
        AggregationConfig(
            recent_window=RecencyWindow.last_hours(stats.recent_window_hours),
            session_gap=stats.session_gap,
            timezone=stats.zone,
        )
    )


def get_stats_service(
    client: SpotifyClient = Depends(get_spotify_client),
    token_manager: TokenManager = Depends(get_token_manager),
    aggregator: ListeningAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
) -> ListeningStatsService:
    """Compose fetcher + aggregator for one request."""
    fetcher = SnapshotFetcher(client, token_manager, policy=settings.stats.fetch_policy)
    return ListeningStatsService(fetcher, aggregator)


# Hey future me, unlike a lenient session-id parser this one is STRICT: the header must
# be "Bearer <token>". The prefix is case-insensitive, the token must not be empty.
def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the access token from an Authorization header.

    Args:
        authorization: Authorization header value

    Returns:
        The token, or None if the header is missing or not a Bearer header
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def get_credential_store(
    authorization: str | None = Header(None),
    x_refresh_token: str | None = Header(None),
) -> CredentialStore:
    """Build the per-request credential store from the client-held tokens.

    The refresh token is optional; without it a 401 from Spotify can't be
    recovered and ends as "re-authentication required".

    Raises:
        ValidationError: 401 if there is no Bearer token
    """
    access_token = parse_bearer_token(authorization)
    if access_token is None:
        raise ValidationError("Missing Bearer token", status_code=401)
    refresh_token = x_refresh_token.strip() if x_refresh_token else None
    return CredentialStore.from_tokens(access_token, refresh_token or None)
