"""Shared fixtures and Spotify JSON builders for the test suite."""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from echostats.config import get_settings
from echostats.config.settings import SpotifySettings
from echostats.infrastructure.integrations.spotify_client import SpotifyClient
from echostats.infrastructure.rate_limiter import RateLimiter, RateLimiterConfig

NOW = datetime(2024, 3, 10, 18, 0, tzinfo=UTC)


def iso(instant: datetime) -> str:
    """Spotify-style timestamp: '2024-03-10T17:30:00.000Z'."""
    return instant.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def album_json(
    album_id: str | None = "album-1",
    name: str = "Album One",
    images: list[Any] | None = None,
) -> dict[str, Any]:
    return {
        "id": album_id,
        "name": name,
        "images": images
        if images is not None
        else [
            {"url": f"https://img/{album_id}/640", "width": 640, "height": 640},
            {"url": f"https://img/{album_id}/300", "width": 300, "height": 300},
            {"url": f"https://img/{album_id}/64", "width": 64, "height": 64},
        ],
    }


def track_json(
    track_id: str = "track-1",
    duration_ms: int = 180_000,
    album: dict[str, Any] | None = None,
    name: str | None = None,
) -> dict[str, Any]:
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "duration_ms": duration_ms,
        "album": album if album is not None else album_json(),
        "artists": [{"id": "artist-1", "name": "Artist One"}],
    }


def play_json(played_at: datetime, track: dict[str, Any] | None = None) -> dict[str, Any]:
    return {"played_at": iso(played_at), "track": track if track is not None else track_json()}


def artist_json(artist_id: str = "artist-1", genres: list[Any] | None = None) -> dict[str, Any]:
    return {"id": artist_id, "name": f"Artist {artist_id}", "genres": genres or []}


def paging(items: list[Any]) -> dict[str, Any]:
    return {"items": items, "total": len(items), "limit": 50, "offset": 0}


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def spotify_settings() -> SpotifySettings:
    """Spotify settings with test credentials."""
    return SpotifySettings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:5173/callback",
        request_timeout=5.0,
    )


@pytest.fixture
def fast_limiter() -> RateLimiter:
    """Rate limiter that never makes a test wait."""
    return RateLimiter(
        config=RateLimiterConfig(max_tokens=1000, refill_rate=1000.0, max_penalty_seconds=0.0),
        name="test",
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()



@pytest.fixture
def make_spotify_client(
    spotify_settings: SpotifySettings, fast_limiter: RateLimiter
) -> Callable[..., SpotifyClient]:
    """Build a SpotifyClient whose HTTP calls go to `handler` instead of Spotify."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        settings: SpotifySettings | None = None,
    ) -> SpotifyClient:
        return SpotifyClient(
            settings or spotify_settings,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            rate_limiter=fast_limiter,
        )

    return _make
