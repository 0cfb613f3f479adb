"""Listening summary aggregation.

Hey future me - everything in here is a PURE function of (snapshot, now, config).
No clock reads, no I/O, no randomness: the same input produces an identical
DerivedSummary every time. `now` is always passed in, that's what makes the
recency windows and "today" buckets testable.

Malformed or missing fields were already turned into None/empty by the
tolerant parsers in domain.entities, so nothing here raises on bad upstream
data. A play without a timestamp simply never falls inside a window, an item
without an album id belongs to no album group.

Rounding: Spotify-derived numbers are presented the way the dashboard always
showed them, with half-up rounding (2.5 -> 3). Python's round() is banker's
rounding (2.5 -> 2), which is why _round_half_up exists.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta, tzinfo

from echostats.domain.entities import (
    AlbumPlayStats,
    AudioFeatures,
    AudioFeatureSummary,
    Artist,
    DailyListening,
    DerivedSummary,
    GenreCount,
    PlayHistoryItem,
    RawSnapshot,
)
from echostats.domain.value_objects.recency_window import RecencyWindow

logger = logging.getLogger(__name__)

_MS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class AggregationConfig:
    """Tunables of the aggregation.

    Attributes:
        recent_window: Window for recent tracks, minutes, sessions and the yearly estimate
        session_gap: A gap strictly longer than this starts a new session
        timezone: Timezone for "today", local hours and calendar dates
        genre_limit: Number of genres in the histogram
        album_limit: Number of albums in top_albums
        daily_buckets: Number of most recent dates in daily_listening
    """

    recent_window: RecencyWindow = field(default_factory=lambda: RecencyWindow.last_hours(48))
    session_gap: timedelta = timedelta(minutes=30)
    timezone: tzinfo = UTC
    genre_limit: int = 8
    album_limit: int = 12
    daily_buckets: int = 7


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_minutes(value: float) -> float:
    # One decimal for presentation, half-up like the integer totals
    return math.floor(value * 10 + 0.5) / 10


def _played_at(play: PlayHistoryItem) -> datetime:
    # Only called on plays that passed the window filter
    assert play.played_at is not None  # nosec B101
    return play.played_at


# =============================================================================
# GENRES & MOOD
# =============================================================================


def top_genres(artists: Iterable[Artist], limit: int = 8) -> list[GenreCount]:
    """Genre histogram over the top artists.

    Genres are lower-cased before counting. Ties keep first-seen order
    (sorted() is stable).
    """
    counts: Counter[str] = Counter()
    for artist in artists:
        for genre in artist.genres:
            counts[genre.lower()] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [GenreCount(genre=genre, count=count) for genre, count in ranked[:limit]]


def summarize_audio_features(
    features: Iterable[AudioFeatures | None],
) -> AudioFeatureSummary | None:
    """Average tempo, energy and danceability of the non-null entries.

    Returns:
        Summary with whole BPM and whole percentages, or None if no entry
        was usable (never an object of zeros)
    """
    usable = [f for f in features if f is not None]
    if not usable:
        return None
    count = len(usable)
    return AudioFeatureSummary(
        avg_tempo=_round_half_up(sum(f.tempo for f in usable) / count),
        avg_energy=_round_half_up(sum(f.energy for f in usable) / count * 100),
        avg_danceability=_round_half_up(sum(f.danceability for f in usable) / count * 100),
    )


# =============================================================================
# RECENCY WINDOWS
# =============================================================================


def plays_in_window(
    plays: Iterable[PlayHistoryItem],
    window: RecencyWindow,
    now: datetime,
    tz: tzinfo = UTC,
) -> list[PlayHistoryItem]:
    """Plays with start <= played_at <= now, newest first."""
    start, end = window.bounds(now, tz)
    inside = [
        play for play in plays if play.played_at is not None and start <= play.played_at <= end
    ]
    inside.sort(key=_played_at, reverse=True)
    return inside


def total_minutes(plays: Iterable[PlayHistoryItem]) -> int:
    """Summed track durations in whole minutes."""
    total_ms = sum(play.duration_ms for play in plays)
    return _round_half_up(total_ms / _MS_PER_MINUTE)


def estimate_yearly_minutes(minutes: int, window_hours: float) -> int | None:
    """Rough yearly projection: daily average of the window times 365.

    Hey future me - this is NOT an estimator anyone should trust. With the
    default 48h window it's literally "what you played in two days, times
    182.5". The presenter labels it as "about". None when nothing was played.
    """
    if minutes <= 0 or window_hours <= 0:
        return None
    window_days = window_hours / 24
    return _round_half_up(minutes / window_days * 365)


def count_sessions(
    plays: Iterable[PlayHistoryItem],
    gap: timedelta = timedelta(minutes=30),
) -> int:
    """Count listening sessions.

    Plays are ordered ascending by time first, independent of the order the
    caller displays them in. A session starts at the first play and whenever
    the gap to the previous play is strictly longer than `gap`.
    """
    timestamps = sorted(play.played_at for play in plays if play.played_at is not None)
    sessions = 0
    previous: datetime | None = None
    for played_at in timestamps:
        if previous is None or played_at - previous > gap:
            sessions += 1
        previous = played_at
    return sessions


# =============================================================================
# ALBUMS
# =============================================================================


def top_albums(plays: Iterable[PlayHistoryItem], limit: int = 12) -> list[AlbumPlayStats]:
    """Most played albums of the recently-played history.

    Groups by album id (items without one are skipped), counts plays and
    accumulates minutes. Name and cover come from the first play of the album.
    """
    groups: dict[str, _AlbumGroup] = {}
    for play in plays:
        album_id = play.album_id
        if not album_id:
            continue
        group = groups.get(album_id)
        if group is None:
            album = play.track.album if play.track else None
            group = _AlbumGroup(
                name=album.name if album else None,
                image=album.cover_url if album else None,
            )
            groups[album_id] = group
        group.play_count += 1
        group.duration_ms += play.duration_ms

    ranked = sorted(groups.items(), key=lambda item: item[1].play_count, reverse=True)
    return [
        AlbumPlayStats(
            id=album_id,
            name=group.name,
            image=group.image,
            play_count=group.play_count,
            minutes=_round_minutes(group.duration_ms / _MS_PER_MINUTE),
        )
        for album_id, group in ranked[:limit]
    ]


@dataclass
class _AlbumGroup:
    name: str | None
    image: str | None
    play_count: int = 0
    duration_ms: int = 0


# =============================================================================
# HOURLY / DAILY BUCKETS
# =============================================================================


def hourly_minutes(plays: Iterable[PlayHistoryItem], tz: tzinfo = UTC) -> list[float]:
    """Minutes per local hour of day (24 slots)."""
    slots = [0.0] * 24
    for play in plays:
        if play.played_at is None:
            continue
        slots[play.played_at.astimezone(tz).hour] += play.duration_ms / _MS_PER_MINUTE
    return [_round_minutes(minutes) for minutes in slots]


def daily_minutes(
    plays: Iterable[PlayHistoryItem],
    tz: tzinfo = UTC,
    buckets: int = 7,
) -> list[DailyListening]:
    """Minutes per local calendar date; the `buckets` most recent dates, ascending."""
    per_date: dict[str, float] = {}
    for play in plays:
        if play.played_at is None:
            continue
        day = play.played_at.astimezone(tz).date().isoformat()
        per_date[day] = per_date.get(day, 0.0) + play.duration_ms / _MS_PER_MINUTE
    recent_dates = sorted(per_date)[-buckets:] if buckets > 0 else []
    return [DailyListening(date=day, minutes=_round_minutes(per_date[day])) for day in recent_dates]


# =============================================================================
# ENGINE
# =============================================================================


class ListeningAggregator:
    """Turns a RawSnapshot into a DerivedSummary."""

    def __init__(self, config: AggregationConfig | None = None) -> None:
        self.config = config or AggregationConfig()

    def aggregate(self, snapshot: RawSnapshot, now: datetime) -> DerivedSummary:
        """Compute the listening summary.

        Args:
            snapshot: Fully assembled upstream data of one request
            now: Reference instant; a naive datetime is taken as UTC

        Returns:
            DerivedSummary
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        cfg = self.config
        tz = cfg.timezone
        plays: Sequence[PlayHistoryItem] = snapshot.recently_played

        recent = plays_in_window(plays, cfg.recent_window, now, tz)
        minutes_recent = total_minutes(recent)
        window_hours = cfg.recent_window.length_hours(now, tz)

        today = plays_in_window(plays, RecencyWindow.today(), now, tz)
        last_week = plays_in_window(plays, RecencyWindow.last_days(7), now, tz)

        summary = DerivedSummary(
            top_genres=tuple(top_genres(snapshot.top_artists, cfg.genre_limit)),
            audio_feature_summary=summarize_audio_features(snapshot.audio_features),
            recent_tracks=tuple(recent),
            listening_minutes_recent=minutes_recent,
            estimated_yearly_minutes=estimate_yearly_minutes(minutes_recent, window_hours),
            sessions_count=count_sessions(recent, cfg.session_gap),
            top_albums=tuple(top_albums(plays, cfg.album_limit)),
            hourly_listening=tuple(hourly_minutes(today, tz)),
            daily_listening=tuple(daily_minutes(last_week, tz, cfg.daily_buckets)),
            listening_minutes_today=total_minutes(today),
            listening_minutes_last_7_days=total_minutes(last_week),
            session_count_today=count_sessions(today, cfg.session_gap),
            window_hours=window_hours,
        )
        logger.debug(
            "Aggregated %d plays (%d in %s window, %d sessions)",
            len(plays),
            len(recent),
            cfg.recent_window.describe(),
            summary.sessions_count,
        )
        return summary


def aggregate(
    snapshot: RawSnapshot,
    now: datetime,
    config: AggregationConfig | None = None,
) -> DerivedSummary:
    """Functional shortcut for ListeningAggregator(config).aggregate(snapshot, now)."""
    return ListeningAggregator(config).aggregate(snapshot, now)
