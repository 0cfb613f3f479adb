"""Listening stats endpoint for the dashboard."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from echostats.api.dependencies import get_credential_store, get_stats_service
from echostats.api.schemas.stats import StatsSummaryResponse
from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.stats_service import ListeningStatsService
from echostats.domain.exceptions import UpstreamAuthError

logger = logging.getLogger(__name__)

router = APIRouter()


# Hey future me - this is the ONE data endpoint. The client sends its access token as
# Bearer and (optionally) its refresh token as X-Refresh-Token. If Spotify answers 401
# we refresh once and retry; the new tokens go back in X-Access-Token / X-Refresh-Token
# so the client can update its storage. A terminal auth failure is the ONLY thing that
# is not "Failed to fetch stats": it becomes 401 "Re-authentication required" via the
# global UpstreamAuthError handler.
@router.get("/summary")
async def get_stats_summary(
    response: Response,
    time_range: str | None = Query(
        default=None,
        description="short_term, medium_term or long_term; anything else means short_term",
    ),
    store: CredentialStore = Depends(get_credential_store),
    service: ListeningStatsService = Depends(get_stats_service),
) -> StatsSummaryResponse:
    """Get the listening summary of the authenticated user.

    Returns:
        Derived listening stats plus the echoed profile, top items and playlists
    """
    try:
        report = await service.get_summary(store, time_range)
    except UpstreamAuthError:
        raise
    except Exception as e:
        logger.error("Failed to fetch stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch stats") from e

    if store.was_refreshed and store.access_token:
        response.headers["X-Access-Token"] = store.access_token
        if store.refresh_token:
            response.headers["X-Refresh-Token"] = store.refresh_token

    return StatsSummaryResponse.from_report(report)
