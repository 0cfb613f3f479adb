"""Fan-out fetcher: one RawSnapshot from several concurrent Spotify reads.

Hey future me - the flow for one stats request:

    phase 1 (concurrent):  /me, top tracks, top artists, recently played, playlists
    phase 2 (dependent):   /audio-features?ids=... (only if phase 1 found track ids)
    assemble:              RawSnapshot.from_api(...) - only after EVERYTHING settled

401 handling: a 401 on ANY read triggers exactly ONE retry cycle per snapshot.
We ask TokenManager for a fresh token (single-flight, so six parallel 401s still cause
one refresh), then re-issue ONLY the reads that didn't succeed. Successful results are
kept. A second 401 after the refresh is terminal -> UpstreamAuthError.

Other failures depend on the FetchPolicy:
- ALL_OR_NOTHING (default): the first failure (in source order) propagates unchanged.
- BEST_EFFORT: the failed source becomes empty and its name lands in
  RawSnapshot.missing_sources.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.token_manager import TokenManager
from echostats.domain.entities import RawSnapshot
from echostats.domain.exceptions import UpstreamAuthError
from echostats.domain.value_objects.fetch_policy import FetchPolicy
from echostats.domain.value_objects.time_range import TimeRange
from echostats.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

# A read takes the access token to use and returns the parsed JSON body
Read = Callable[[str], Awaitable[dict[str, Any]]]


class SnapshotFetcher:
    """Fetches all upstream data for one aggregation request."""

    def __init__(
        self,
        client: SpotifyClient,
        token_manager: TokenManager,
        policy: FetchPolicy = FetchPolicy.ALL_OR_NOTHING,
    ) -> None:
        self._client = client
        self._token_manager = token_manager
        self._policy = policy

    @property
    def policy(self) -> FetchPolicy:
        return self._policy

    async def fetch_snapshot(
        self,
        store: CredentialStore,
        time_range: "TimeRange | str | None" = TimeRange.SHORT_TERM,
    ) -> RawSnapshot:
        """Fetch every source concurrently and assemble one snapshot.

        Args:
            store: Credential store of the requesting session
            time_range: Affinity range for top items; unknown values become short_term

        Returns:
            Immutable RawSnapshot

        Raises:
            UpstreamAuthError: No token, or still 401 after one refresh
            UpstreamError: Any other upstream failure (ALL_OR_NOTHING policy)
        """
        if store.access_token is None:
            raise UpstreamAuthError("No credentials for this session", http_status=401)

        resolved_range = TimeRange.coerce(time_range)
        retry_budget = _RetryBudget()
        missing: list[str] = []

        first_phase: dict[str, Read] = {
            "profile": self._client.get_current_user,
            "top_tracks": lambda token: self._client.get_top_tracks(token, resolved_range),
            "top_artists": lambda token: self._client.get_top_artists(token, resolved_range),
            "recently_played": self._client.get_recently_played,
            "playlists": self._client.get_user_playlists,
        }
        results = await self._run_reads(first_phase, store, retry_budget, missing)

        # Audio features need the ids from phase 1. Parsed with the same tolerant
        # parser the snapshot uses, so "has ids" means the same thing in both places.
        track_ids = RawSnapshot.from_api(top_tracks=results.get("top_tracks")).top_track_ids
        if track_ids:
            second_phase: dict[str, Read] = {
                "audio_features": lambda token: self._client.get_audio_features(token, track_ids),
            }
            results.update(await self._run_reads(second_phase, store, retry_budget, missing))
        else:
            logger.debug("No top track ids, skipping audio-features lookup")

        snapshot = RawSnapshot.from_api(
            time_range=resolved_range,
            profile=results.get("profile"),
            top_tracks=results.get("top_tracks"),
            top_artists=results.get("top_artists"),
            recently_played=results.get("recently_played"),
            playlists=results.get("playlists"),
            audio_features=results.get("audio_features"),
            missing_sources=tuple(missing),
        )
        logger.info(
            "Fetched snapshot (time_range=%s, tracks=%d, artists=%d, plays=%d, refreshed=%s%s)",
            resolved_range.value,
            len(snapshot.top_tracks),
            len(snapshot.top_artists),
            len(snapshot.recently_played),
            retry_budget.used,
            f", missing={','.join(missing)}" if missing else "",
        )
        return snapshot

    async def _run_reads(
        self,
        reads: dict[str, Read],
        store: CredentialStore,
        retry_budget: "_RetryBudget",
        missing: list[str],
    ) -> dict[str, Any]:
        """Run `reads` concurrently, with at most one refresh-and-retry cycle.

        Returns:
            Mapping source name -> JSON body (BEST_EFFORT failures are absent)
        """
        results: dict[str, Any] = {}
        pending = dict(reads)

        while pending:
            token = store.access_token
            if token is None:
                raise UpstreamAuthError("No credentials for this session", http_status=401)

            names = list(pending)
            outcomes = await asyncio.gather(
                *(pending[name](token) for name in names),
                return_exceptions=True,
            )

            unauthorized: dict[str, Read] = {}
            last_auth_error: UpstreamAuthError | None = None
            for name, outcome in zip(names, outcomes, strict=True):
                if isinstance(outcome, UpstreamAuthError):
                    unauthorized[name] = pending[name]
                    last_auth_error = outcome
                elif isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    if self._policy is FetchPolicy.ALL_OR_NOTHING:
                        raise outcome
                    logger.warning("Source %s failed, continuing without it: %s", name, outcome)
                    missing.append(name)
                else:
                    results[name] = outcome

            if not unauthorized:
                break

            if retry_budget.used:
                logger.warning(
                    "Spotify still answered 401 after token refresh (%s)",
                    ", ".join(unauthorized),
                )
                raise UpstreamAuthError(
                    "Spotify rejected the refreshed access token. Please re-authenticate.",
                    http_status=401,
                    body=last_auth_error.body if last_auth_error else None,
                ) from last_auth_error

            retry_budget.used = True
            logger.info(
                "Access token rejected on %d read(s), refreshing and retrying %s",
                len(unauthorized),
                ", ".join(unauthorized),
            )
            await self._token_manager.refresh_credentials(store, token)
            pending = unauthorized

        return results


class _RetryBudget:
    """One refresh-and-retry cycle per snapshot, shared by both phases."""

    __slots__ = ("used",)

    def __init__(self) -> None:
        self.used = False
