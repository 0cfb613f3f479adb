"""Spotify HTTP client: token endpoint and the read-only Web API calls we need."""

import logging
import math
from typing import Any, cast

import httpx

from echostats.config.settings import SpotifySettings
from echostats.domain.exceptions import (
    ConfigurationError,
    RateLimitExceededError,
    UpstreamAuthError,
    UpstreamError,
)
from echostats.domain.value_objects.time_range import TimeRange
from echostats.infrastructure.integrations.http_pool import HttpClientPool
from echostats.infrastructure.rate_limiter import RateLimiter, get_spotify_limiter

logger = logging.getLogger(__name__)

# Upstream bodies can be large HTML error pages; keep logs readable
_MAX_LOGGED_BODY = 500


class SpotifyClient:
    """HTTP client for Spotify token and Web API operations.

    Hey future me - this is the ONLY place that talks HTTP to Spotify. It turns every
    non-2xx, timeout and transport failure into our error taxonomy:

    - token endpoint rejects a grant      -> UpstreamAuthError (with status + body)
    - data call answers 401               -> UpstreamAuthError(http_status=401)
    - data call answers 429               -> RateLimitExceededError
    - anything else non-2xx / timeout     -> UpstreamError

    Callers never see httpx exceptions.
    """

    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL, not a password
    API_BASE_URL = "https://api.spotify.com/v1"

    TOP_ITEMS_LIMIT = 50
    RECENTLY_PLAYED_LIMIT = 50
    PLAYLISTS_LIMIT = 20

    # Hey future me, the http client is NOT created here - it comes from the shared pool on
    # first use, inside the running event loop. Tests inject their own AsyncClient with
    # an httpx.MockTransport instead.
    def __init__(
        self,
        settings: SpotifySettings,
        http_client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        Initialize Spotify client.

        Args:
            settings: Spotify configuration settings
            http_client: Optional client to use instead of the shared pool
            rate_limiter: Optional limiter to use instead of the process-wide one
        """
        self.settings = settings
        self._client = http_client
        self._rate_limiter = rate_limiter

    async def _get_client(self) -> httpx.AsyncClient:
        """Get injected client or the shared pooled client."""
        if self._client is None:
            return await HttpClientPool.get_client(timeout=self.settings.request_timeout)
        return self._client

    def _get_rate_limiter(self) -> RateLimiter:
        if self._rate_limiter is None:
            self._rate_limiter = get_spotify_limiter()
        return self._rate_limiter

    # =========================================================================
    # TOKEN ENDPOINT
    # =========================================================================

    def _require_credentials(self) -> tuple[str, str]:
        """Return (client_id, client_secret) or raise ConfigurationError.

        Checked on every token operation instead of at startup: the server boots
        without credentials and reports the problem on first use.
        """
        client_id = self.settings.client_id.strip()
        client_secret = self.settings.client_secret.strip()
        if not client_id or not client_secret:
            missing = [
                name
                for name, value in (
                    ("SPOTIFY_CLIENT_ID", client_id),
                    ("SPOTIFY_CLIENT_SECRET", client_secret),
                )
                if not value
            ]
            raise ConfigurationError(
                f"Missing Spotify credentials: {', '.join(missing)}. "
                "Set them in the environment or .env file. "
                "Get credentials at https://developer.spotify.com/dashboard"
            )
        return client_id, client_secret

    async def _post_token_grant(self, data: dict[str, str], operation: str) -> dict[str, Any]:
        """POST a form-encoded grant to the token endpoint.

        Hey future me - it HAS to be form-urlencoded, Spotify rejects JSON here.
        The upstream status and body are logged AND attached to the error; token
        exchange problems are impossible to debug otherwise.
        """
        client_id, client_secret = self._require_credentials()
        client = await self._get_client()

        form = {**data, "client_id": client_id, "client_secret": client_secret}

        try:
            response = await client.post(
                self.TOKEN_URL,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", operation, e)
            raise UpstreamAuthError(f"{operation} failed: {type(e).__name__}") from e

        if not response.is_success:
            body = response.text
            error_code: str | None = None
            try:
                error_code = response.json().get("error")
            except (ValueError, AttributeError):
                pass
            logger.error(
                "%s failed: %s %s",
                operation,
                response.status_code,
                body[:_MAX_LOGGED_BODY],
            )
            raise UpstreamAuthError(
                f"{operation} failed",
                http_status=response.status_code,
                body=body,
                error_code=error_code if isinstance(error_code, str) else None,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamAuthError(
                f"{operation} failed: malformed token response",
                http_status=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UpstreamAuthError(
                f"{operation} failed: no access_token in response",
                http_status=response.status_code,
                body=response.text,
            )
        return cast(dict[str, Any], payload)

    # The code is single-use and short-lived, and redirect_uri must match the one the
    # frontend used for the authorize URL EXACTLY or Spotify answers invalid_grant.
    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """
        Exchange authorization code for access token.

        Args:
            code: Authorization code from the OAuth callback
            redirect_uri: Redirect URI used for the authorize request

        Returns:
            Token response with access_token, refresh_token, expires_in, ...

        Raises:
            ConfigurationError: If client credentials are not configured
            UpstreamAuthError: If Spotify rejects the code
        """
        return await self._post_token_grant(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
            operation="Token exchange",
        )

    # Spotify answers 400 {"error": "invalid_grant"} when the refresh token was revoked.
    # The response may omit refresh_token - keeping the old one is the caller's job.
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh access token using refresh token.

        Args:
            refresh_token: Refresh token from previous authentication

        Returns:
            Token response (refresh_token only present if Spotify rotated it)

        Raises:
            ConfigurationError: If client credentials are not configured
            UpstreamAuthError: If the refresh token is invalid/revoked
        """
        return await self._post_token_grant(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            operation="Token refresh",
        )

    # =========================================================================
    # WEB API READS
    # =========================================================================

    async def _get(
        self,
        endpoint: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Rate-limited GET against the Web API.

        Args:
            endpoint: Path below API_BASE_URL, e.g. "/me/top/tracks"
            access_token: OAuth access token
            params: Query parameters

        Returns:
            Parsed JSON body

        Raises:
            UpstreamAuthError: On 401 (token expired or revoked)
            RateLimitExceededError: On 429
            UpstreamError: On any other non-2xx, timeout, transport error or bad JSON
        """
        client = await self._get_client()
        limiter = self._get_rate_limiter()
        url = f"{self.API_BASE_URL}{endpoint}"

        # The wait for a token counts against the per-call timeout too. A 429 pause
        # longer than that fails the call now instead of holding the request open.
        if not await limiter.acquire(max_wait=self.settings.request_timeout):
            retry_after = math.ceil(limiter.pause_remaining)
            logger.warning(
                "Spotify API still backing off for %ss, not calling %s", retry_after, endpoint
            )
            raise RateLimitExceededError(
                f"Spotify API rate limited: {endpoint}",
                retry_after=retry_after or None,
                endpoint=endpoint,
            )

        try:
            response = await client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.TimeoutException as e:
            logger.error("Spotify request timed out: %s", endpoint)
            raise UpstreamError(
                f"Spotify request timed out: {endpoint}", endpoint=endpoint
            ) from e
        except httpx.HTTPError as e:
            logger.error("Spotify request failed: %s (%s)", endpoint, type(e).__name__)
            raise UpstreamError(
                f"Spotify request failed: {endpoint}", endpoint=endpoint
            ) from e

        if response.status_code == 401:
            logger.info("Spotify API returned 401 for %s", endpoint)
            raise UpstreamAuthError(
                "Spotify access token rejected",
                http_status=401,
                body=response.text,
            )

        if response.status_code == 429:
            retry_after_str = response.headers.get("Retry-After")
            retry_after = int(retry_after_str) if retry_after_str and retry_after_str.isdigit() else None
            limiter.drain(retry_after)
            logger.error(
                "Spotify API rate limited (429) on %s. Retry-After: %s seconds",
                endpoint,
                retry_after if retry_after is not None else "not provided",
            )
            raise RateLimitExceededError(
                f"Spotify API rate limited: {endpoint}",
                retry_after=retry_after,
                body=response.text,
                endpoint=endpoint,
            )

        if not response.is_success:
            logger.error(
                "Spotify API error %s on %s: %s",
                response.status_code,
                endpoint,
                response.text[:_MAX_LOGGED_BODY],
            )
            raise UpstreamError(
                f"Spotify API error {response.status_code}: {endpoint}",
                http_status=response.status_code,
                body=response.text,
                endpoint=endpoint,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Spotify API returned malformed JSON: {endpoint}",
                http_status=response.status_code,
                body=response.text,
                endpoint=endpoint,
            ) from e
        if not isinstance(payload, dict):
            raise UpstreamError(
                f"Spotify API returned unexpected JSON: {endpoint}",
                http_status=response.status_code,
                endpoint=endpoint,
            )
        return cast(dict[str, Any], payload)

    async def get_current_user(self, access_token: str) -> dict[str, Any]:
        """Get the current user's profile (/me)."""
        return await self._get("/me", access_token)

    async def get_top_tracks(
        self, access_token: str, time_range: TimeRange = TimeRange.SHORT_TERM
    ) -> dict[str, Any]:
        """Get the user's top tracks for a time range."""
        return await self._get(
            "/me/top/tracks",
            access_token,
            params={"limit": self.TOP_ITEMS_LIMIT, "time_range": time_range.value},
        )

    async def get_top_artists(
        self, access_token: str, time_range: TimeRange = TimeRange.SHORT_TERM
    ) -> dict[str, Any]:
        """Get the user's top artists for a time range."""
        return await self._get(
            "/me/top/artists",
            access_token,
            params={"limit": self.TOP_ITEMS_LIMIT, "time_range": time_range.value},
        )

    # Hey future me, Spotify only keeps the last 50 plays here - no pagination beyond that.
    # That's why all the "recent" stats are computed over a short window.
    async def get_recently_played(self, access_token: str) -> dict[str, Any]:
        """Get the user's recently played tracks."""
        return await self._get(
            "/me/player/recently-played",
            access_token,
            params={"limit": self.RECENTLY_PLAYED_LIMIT},
        )

    async def get_user_playlists(self, access_token: str) -> dict[str, Any]:
        """Get the current user's playlists (first page)."""
        return await self._get(
            "/me/playlists",
            access_token,
            params={"limit": self.PLAYLISTS_LIMIT},
        )

    async def get_audio_features(
        self, access_token: str, track_ids: list[str]
    ) -> dict[str, Any]:
        """Get audio features for up to 100 track ids.

        Returns:
            {"audio_features": [...]} - entries are null for ids without analysis
        """
        return await self._get(
            "/audio-features",
            access_token,
            params={"ids": ",".join(track_ids)},
        )
