"""Domain entities for listening statistics.

Hey future me - there are THREE groups of types in here:

1. CredentialPair - the access/refresh token pair a client session owns.
2. Upstream shapes (Track, Artist, Album, PlayHistoryItem, AudioFeatures,
   Profile, Playlist) and the RawSnapshot that bundles them. Spotify JSON is
   full of optional/nullable nesting (album.images[n], track can be null for
   local files, genres can be missing). Every from_api() parser is TOLERANT:
   missing or malformed fields become None/empty, never an exception. The
   aggregator relies on that - it never has to guard against KeyError.
3. Aggregation output (GenreCount, AudioFeatureSummary, AlbumPlayStats,
   DailyListening, DerivedSummary).

Everything is a frozen dataclass with tuples instead of lists. A snapshot is
built once per request and never mutated afterwards; a summary is pure
derived data. The `raw` fields keep the original JSON for echoing back to the
presenter - they are excluded from equality on purpose so two snapshots with
the same parsed content compare equal.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from echostats.domain.value_objects.image_ref import (
    COVER_FALLBACK_ORDER,
    Image,
    pick_image_url,
)
from echostats.domain.value_objects.time_range import TimeRange

# =============================================================================
# PARSING HELPERS
# =============================================================================


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a Spotify ISO-8601 timestamp like '2024-03-01T12:30:00.123Z'.

    Naive timestamps are taken as UTC. Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _parse_images(value: Any) -> tuple[Image | None, ...]:
    # Keep holes as None so positional fallback (images[1], images[0], ...) stays correct
    return tuple(Image.from_api(item) for item in _as_list(value))


# =============================================================================
# CREDENTIALS
# =============================================================================


@dataclass(frozen=True)
class CredentialPair:
    """Access/refresh token pair owned by one client session.

    Hey future me - refresh_token can be None! Spotify doesn't always send a
    new one on refresh, and a client may only hold an access token. Tokens
    are excluded from repr so they never end up in logs by accident.
    """

    access_token: str = field(repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    payload: Mapping[str, Any] = field(
        default_factory=dict, compare=False, repr=False, hash=False
    )

    @classmethod
    def from_token_response(
        cls,
        data: Mapping[str, Any],
        fallback_refresh_token: str | None = None,
    ) -> "CredentialPair":
        """Build a pair from a Spotify token endpoint response.

        Args:
            data: JSON body of the token response
            fallback_refresh_token: Refresh token to keep if the response omits one

        Returns:
            CredentialPair; refresh_token falls back to `fallback_refresh_token`
        """
        return cls(
            access_token=str(data["access_token"]),
            refresh_token=_as_str(data.get("refresh_token")) or fallback_refresh_token,
            expires_in=_as_int(data.get("expires_in")),
            token_type=_as_str(data.get("token_type")) or "Bearer",
            scope=_as_str(data.get("scope")),
            payload=dict(data),
        )

    def to_token_response(self) -> dict[str, Any]:
        """Token JSON for clients: upstream payload with the effective refresh token."""
        body = dict(self.payload)
        body.setdefault("access_token", self.access_token)
        if self.refresh_token and not body.get("refresh_token"):
            body["refresh_token"] = self.refresh_token
        return body


# =============================================================================
# UPSTREAM SHAPES
# =============================================================================


@dataclass(frozen=True)
class Album:
    """Album as embedded in a track object."""

    id: str | None
    name: str | None
    images: tuple[Image | None, ...] = ()

    @classmethod
    def from_api(cls, data: Any) -> "Album | None":
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            images=_parse_images(data.get("images")),
        )

    @property
    def cover_url(self) -> str | None:
        """Representative cover URL using the documented fallback order."""
        return pick_image_url(self.images, COVER_FALLBACK_ORDER)


@dataclass(frozen=True)
class Artist:
    """Artist from /me/top/artists."""

    id: str | None
    name: str | None
    genres: tuple[str, ...] = ()
    images: tuple[Image | None, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, data: Any) -> "Artist | None":
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            # Missing genres list is treated as empty, non-string entries are dropped
            genres=tuple(g for g in _as_list(data.get("genres")) if isinstance(g, str) and g),
            images=_parse_images(data.get("images")),
            raw=data,
        )


@dataclass(frozen=True)
class Track:
    """Track from /me/top/tracks or a recently-played item."""

    id: str | None
    name: str | None
    duration_ms: int = 0
    album: Album | None = None
    artist_names: tuple[str, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, data: Any) -> "Track | None":
        if not isinstance(data, dict):
            return None
        duration = _as_int(data.get("duration_ms"))
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            duration_ms=max(duration or 0, 0),
            album=Album.from_api(data.get("album")),
            artist_names=tuple(
                name
                for name in (_as_str(_as_dict(a).get("name")) for a in _as_list(data.get("artists")))
                if name
            ),
            raw=data,
        )


@dataclass(frozen=True)
class PlayHistoryItem:
    """One entry of /me/player/recently-played."""

    played_at: datetime | None
    track: Track | None
    played_at_raw: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> "PlayHistoryItem | None":
        if not isinstance(data, dict):
            return None
        raw_ts = _as_str(data.get("played_at"))
        return cls(
            played_at=parse_timestamp(raw_ts),
            track=Track.from_api(data.get("track")),
            played_at_raw=raw_ts,
        )

    @property
    def duration_ms(self) -> int:
        return self.track.duration_ms if self.track else 0

    @property
    def album_id(self) -> str | None:
        if self.track and self.track.album:
            return self.track.album.id
        return None


@dataclass(frozen=True)
class AudioFeatures:
    """Audio features of one track.

    Hey future me - a missing numeric field counts as 0 inside an entry that
    EXISTS. A null entry (Spotify has no analysis for that id) is a different
    thing: it's dropped before averaging, never treated as zeros.
    """

    id: str | None
    tempo: float = 0.0
    energy: float = 0.0
    danceability: float = 0.0

    @classmethod
    def from_api(cls, data: Any) -> "AudioFeatures | None":
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            tempo=_as_float(data.get("tempo")) or 0.0,
            energy=_as_float(data.get("energy")) or 0.0,
            danceability=_as_float(data.get("danceability")) or 0.0,
        )


@dataclass(frozen=True)
class Profile:
    """Current user profile from /me."""

    id: str | None
    display_name: str | None = None
    country: str | None = None
    product: str | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, data: Any) -> "Profile | None":
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            display_name=_as_str(data.get("display_name")),
            country=_as_str(data.get("country")),
            product=_as_str(data.get("product")),
            raw=data,
        )


@dataclass(frozen=True)
class Playlist:
    """Playlist summary from /me/playlists."""

    id: str | None
    name: str | None
    tracks_total: int = 0
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, data: Any) -> "Playlist | None":
        if not isinstance(data, dict):
            return None
        return cls(
            id=_as_str(data.get("id")),
            name=_as_str(data.get("name")),
            tracks_total=_as_int(_as_dict(data.get("tracks")).get("total")) or 0,
            raw=data,
        )


def _parse_items(payload: Any, parser: Any, key: str = "items") -> tuple[Any, ...]:
    parsed = (parser(item) for item in _as_list(_as_dict(payload).get(key)))
    return tuple(item for item in parsed if item is not None)


@dataclass(frozen=True)
class RawSnapshot:
    """Immutable bundle of upstream responses for ONE aggregation request.

    Produced once by the fan-out fetcher after ALL reads settled, consumed
    once by the aggregator.
    """

    time_range: TimeRange = TimeRange.SHORT_TERM
    profile: Profile | None = None
    top_tracks: tuple[Track, ...] = ()
    top_artists: tuple[Artist, ...] = ()
    recently_played: tuple[PlayHistoryItem, ...] = ()
    playlists: tuple[Playlist, ...] = ()
    audio_features: tuple[AudioFeatures | None, ...] = ()
    missing_sources: tuple[str, ...] = ()

    @classmethod
    def from_api(
        cls,
        *,
        time_range: TimeRange = TimeRange.SHORT_TERM,
        profile: Any = None,
        top_tracks: Any = None,
        top_artists: Any = None,
        recently_played: Any = None,
        playlists: Any = None,
        audio_features: Any = None,
        missing_sources: tuple[str, ...] = (),
    ) -> "RawSnapshot":
        """Assemble a snapshot from raw Spotify JSON bodies.

        Args:
            profile: /me body
            top_tracks: /me/top/tracks paging body
            top_artists: /me/top/artists paging body
            recently_played: /me/player/recently-played cursor body
            playlists: /me/playlists paging body
            audio_features: /audio-features body ({"audio_features": [...]})
            missing_sources: Names of sources that failed (best-effort policy)
        """
        return cls(
            time_range=time_range,
            profile=Profile.from_api(profile),
            top_tracks=_parse_items(top_tracks, Track.from_api),
            top_artists=_parse_items(top_artists, Artist.from_api),
            recently_played=_parse_items(recently_played, PlayHistoryItem.from_api),
            playlists=_parse_items(playlists, Playlist.from_api),
            # Null entries are KEPT here; the aggregator filters them
            audio_features=tuple(
                AudioFeatures.from_api(item)
                for item in _as_list(_as_dict(audio_features).get("audio_features"))
            ),
            missing_sources=tuple(missing_sources),
        )

    @property
    def top_track_ids(self) -> list[str]:
        """Non-empty ids of the top tracks, in rank order."""
        return [track.id for track in self.top_tracks if track.id]


# =============================================================================
# AGGREGATION OUTPUT
# =============================================================================


@dataclass(frozen=True)
class GenreCount:
    genre: str
    count: int


@dataclass(frozen=True)
class AudioFeatureSummary:
    """Average mood of the top tracks.

    avg_tempo is whole BPM; avg_energy and avg_danceability are whole
    percentages (0-100).
    """

    avg_tempo: int
    avg_energy: int
    avg_danceability: int


@dataclass(frozen=True)
class AlbumPlayStats:
    """Play count and listening minutes of one album in the recent history."""

    id: str
    name: str | None
    image: str | None
    play_count: int
    minutes: float


@dataclass(frozen=True)
class DailyListening:
    date: str  # ISO "YYYY-MM-DD" in the configured timezone
    minutes: float


@dataclass(frozen=True)
class DerivedSummary:
    """Listening summary derived from one RawSnapshot.

    Hey future me - estimated_yearly_minutes is a ROUGH projection: the daily
    average of a short window (often only 48h) times 365. Show it as
    "about ...", never as a measured number. It is None (not 0) when nothing
    was played in the window, and audio_feature_summary is None (not zeros)
    when no track had features.
    """

    top_genres: tuple[GenreCount, ...]
    audio_feature_summary: AudioFeatureSummary | None
    recent_tracks: tuple[PlayHistoryItem, ...]
    listening_minutes_recent: int
    estimated_yearly_minutes: int | None
    sessions_count: int
    top_albums: tuple[AlbumPlayStats, ...]
    hourly_listening: tuple[float, ...]
    daily_listening: tuple[DailyListening, ...]
    listening_minutes_today: int = 0
    listening_minutes_last_7_days: int = 0
    session_count_today: int = 0
    window_hours: float = 48.0


__all__ = [
    "Album",
    "AlbumPlayStats",
    "Artist",
    "AudioFeatureSummary",
    "AudioFeatures",
    "CredentialPair",
    "DailyListening",
    "DerivedSummary",
    "GenreCount",
    "PlayHistoryItem",
    "Playlist",
    "Profile",
    "RawSnapshot",
    "Track",
    "parse_timestamp",
]
