"""Token lifecycle manager with single-flight refresh.

Hey future me - this is the piece that keeps the fan-out fetcher supplied with a valid
token under CONCURRENT load. The failure mode it prevents:

    six parallel Spotify reads all get 401 at the same moment
    -> six refresh calls hit the token endpoint
    -> Spotify rotates the refresh token on the first one
    -> the other five fail with invalid_grant and the user gets logged out

The fix is SINGLE-FLIGHT: while a refresh for a given credential is running, every
other caller that needs a refresh for the SAME credential awaits the SAME task.

The in-flight map is keyed by refresh token and owned by this instance (one per app,
see lifecycle.py). Different sessions have different refresh tokens and never block
each other. The entry is removed as soon as the task settles, success OR failure,
so a later genuine need can try again.
"""

import asyncio
import logging

from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.spotify_auth_service import SpotifyAuthService
from echostats.domain.entities import CredentialPair
from echostats.domain.exceptions import UpstreamAuthError, ValidationError

logger = logging.getLogger(__name__)


class TokenManager:
    """Exchanges codes and refreshes tokens, coalescing concurrent refreshes."""

    def __init__(self, auth_service: SpotifyAuthService) -> None:
        """Initialize token manager.

        Args:
            auth_service: Stateless service doing the actual token endpoint calls
        """
        self._auth_service = auth_service
        self._in_flight: dict[str, asyncio.Task[CredentialPair]] = {}

    async def exchange_code(self, code: str, redirect_uri: str) -> CredentialPair:
        """Exchange an authorization code for a credential pair.

        Raises:
            ValidationError: If code or redirect_uri is empty
            ConfigurationError: If client credentials are missing
            UpstreamAuthError: If Spotify rejects the code
        """
        if not code or not redirect_uri:
            raise ValidationError("Missing code or redirectUri")
        return await self._auth_service.exchange_code(code, redirect_uri)

    async def refresh(self, refresh_token: str) -> CredentialPair:
        """Refresh a credential, joining an in-flight refresh for the same token.

        Args:
            refresh_token: Refresh token of the credential to refresh

        Returns:
            New CredentialPair; its refresh_token is the old one if Spotify
            didn't rotate it

        Raises:
            ValidationError: If refresh_token is empty
            ConfigurationError: If client credentials are missing
            UpstreamAuthError: If Spotify rejects the refresh token
        """
        if not refresh_token:
            raise ValidationError("Missing refresh_token")

        task = self._in_flight.get(refresh_token)
        if task is None:
            task = asyncio.create_task(self._auth_service.refresh_token(refresh_token))
            self._in_flight[refresh_token] = task
            task.add_done_callback(
                lambda done, key=refresh_token: self._settle(key, done)
            )
            logger.debug("Started token refresh (in flight: %d)", len(self._in_flight))
        else:
            logger.debug("Joining in-flight token refresh")

        # shield: a cancelled waiter must not cancel the refresh the others are awaiting
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task[CredentialPair]) -> None:
        # Only drop the entry if it is still ours
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Token refresh failed: %s", task.exception())

    async def refresh_credentials(
        self, store: CredentialStore, stale_access_token: str
    ) -> CredentialPair:
        """Make sure `store` holds a token newer than `stale_access_token`.

        Hey future me - this is what the fetcher calls after a 401. If another
        coroutine of the same session already refreshed (the store holds a
        different access token now), we just hand that one back - no upstream
        call, and the stale token is never used again.

        Args:
            store: Credential store of the session
            stale_access_token: The access token that just got a 401

        Returns:
            The current (fresh) CredentialPair, also written into `store`

        Raises:
            UpstreamAuthError: If the session has no credentials or no refresh token,
                or Spotify rejects the refresh
        """
        current = store.current
        if current is None:
            raise UpstreamAuthError("No credentials for this session", http_status=401)
        if current.access_token != stale_access_token:
            return current
        if not current.refresh_token:
            raise UpstreamAuthError(
                "Access token expired and no refresh token is available",
                http_status=401,
            )

        refreshed = await self.refresh(current.refresh_token)
        # Another waiter of the same session may have written it already - replace() is idempotent
        store.replace(refreshed)
        return refreshed

    def in_flight_count(self) -> int:
        """Number of refreshes currently running (for tests and /health)."""
        return len(self._in_flight)
