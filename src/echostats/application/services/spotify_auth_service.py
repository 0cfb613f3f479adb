"""Spotify OAuth token service.

Hey future me - this service wraps SpotifyClient's token endpoint calls and turns
the raw JSON into CredentialPair objects. It is STATELESS: no token storage, no
single-flight bookkeeping. That's TokenManager's job (token_manager.py).

OAuth flow (authorization code grant, server-held client secret):
1. Frontend sends the user to Spotify's authorize URL (out of scope here)
2. Spotify redirects back with ?code=...
3. exchange_code(code, redirect_uri) -> CredentialPair
4. refresh_token(refresh_token) -> CredentialPair when the access token expired
"""

import logging

from echostats.domain.entities import CredentialPair
from echostats.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


class SpotifyAuthService:
    """Service for Spotify OAuth token operations."""

    def __init__(self, client: SpotifyClient) -> None:
        """Initialize auth service.

        Args:
            client: Spotify client used for token endpoint calls
        """
        self._client = client

    async def exchange_code(self, code: str, redirect_uri: str) -> CredentialPair:
        """Exchange authorization code for tokens.

        Args:
            code: Authorization code from Spotify callback
            redirect_uri: Redirect URI the frontend used for the authorize URL

        Returns:
            CredentialPair with access_token, refresh_token, etc.

        Raises:
            ConfigurationError: If client credentials are missing
            UpstreamAuthError: If Spotify rejects the code
        """
        token_data = await self._client.exchange_code(code, redirect_uri)

        logger.info("Successfully exchanged code for tokens")

        return CredentialPair.from_token_response(token_data)

    # IMPORTANT: Spotify might NOT return a new refresh_token - keep the old one!
    # Dropping it would break every future refresh for this session.
    async def refresh_token(self, refresh_token: str) -> CredentialPair:
        """Refresh an expired access token.

        Args:
            refresh_token: Valid refresh token

        Returns:
            CredentialPair with the new access token; refresh_token is the rotated
            one if Spotify sent it, otherwise the one passed in

        Raises:
            ConfigurationError: If client credentials are missing
            UpstreamAuthError: If refresh fails (e.g., revoked token)
        """
        token_data = await self._client.refresh_token(refresh_token)

        rotated = bool(token_data.get("refresh_token"))
        logger.debug(
            "Successfully refreshed access token (refresh token %s)",
            "rotated" if rotated else "retained",
        )

        return CredentialPair.from_token_response(
            token_data, fallback_refresh_token=refresh_token
        )
