"""API schemas for the listening stats endpoint.

Hey future me - the JSON keys are camelCase (topGenres, audioFeatureSummary, ...)
because the dashboard was built against that contract. Python attributes stay
snake_case; CamelModel's alias generator does the translation and the router
dumps with by_alias=True. The echoed upstream lists (topTracks, topArtists,
playlists) keep Spotify's paging shape {"items": [...]}, the dashboard reads
topTracks.items.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from echostats.application.services.stats_service import StatsReport
from echostats.domain.entities import PlayHistoryItem


class CamelModel(BaseModel):
    """Base model serializing to camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenreCountSchema(CamelModel):
    genre: str = Field(description="Lower-cased genre name")
    count: int = Field(description="Number of top artists tagged with it")


class AudioFeatureSummarySchema(CamelModel):
    avg_tempo: int = Field(description="Average tempo in BPM")
    avg_energy: int = Field(description="Average energy, 0-100")
    avg_danceability: int = Field(description="Average danceability, 0-100")


class AlbumPlayStatsSchema(CamelModel):
    id: str
    name: str | None = None
    image: str | None = Field(default=None, description="Cover URL")
    play_count: int
    minutes: float


class DailyListeningSchema(CamelModel):
    date: str = Field(description="Local calendar date, YYYY-MM-DD")
    minutes: float


class RecentTrackSchema(BaseModel):
    """A play inside the recency window, in Spotify's own play-history shape."""

    played_at: str | None = None
    track: dict[str, Any] | None = None

    @classmethod
    def from_play(cls, play: PlayHistoryItem) -> "RecentTrackSchema":
        return cls(
            played_at=play.played_at_raw,
            track=dict(play.track.raw) if play.track else None,
        )


class PagedItemsSchema(BaseModel):
    items: list[dict[str, Any]] = Field(default_factory=list)


class StatsSummaryResponse(CamelModel):
    """Response of GET /stats/summary."""

    profile: dict[str, Any] | None = None
    time_range: str
    top_tracks: PagedItemsSchema
    top_artists: PagedItemsSchema
    playlists: PagedItemsSchema

    top_genres: list[GenreCountSchema]
    audio_feature_summary: AudioFeatureSummarySchema | None = None
    recent_tracks: list[RecentTrackSchema]
    listening_minutes_recent: int
    estimated_yearly_minutes: int | None = Field(
        default=None,
        description="ROUGH projection from the recent window, not a measurement",
    )
    sessions_count: int
    top_albums: list[AlbumPlayStatsSchema]
    hourly_listening: list[float] = Field(description="24 local-hour slots, minutes today")
    daily_listening: list[DailyListeningSchema]
    listening_minutes_today: int
    listening_minutes_last_7_days: int
    session_count_today: int

    window_hours: float
    missing_sources: list[str] = Field(
        default_factory=list,
        description="Sources that failed under the best-effort fetch policy",
    )
    generated_at: str

    @classmethod
    def from_report(cls, report: StatsReport) -> "StatsSummaryResponse":
        snapshot = report.snapshot
        summary = report.summary
        feature_summary = summary.audio_feature_summary
        return cls(
            profile=dict(snapshot.profile.raw) if snapshot.profile else None,
            time_range=snapshot.time_range.value,
            top_tracks=PagedItemsSchema(items=[dict(t.raw) for t in snapshot.top_tracks]),
            top_artists=PagedItemsSchema(items=[dict(a.raw) for a in snapshot.top_artists]),
            playlists=PagedItemsSchema(items=[dict(p.raw) for p in snapshot.playlists]),
            top_genres=[
                GenreCountSchema(genre=g.genre, count=g.count) for g in summary.top_genres
            ],
            audio_feature_summary=(
                AudioFeatureSummarySchema(
                    avg_tempo=feature_summary.avg_tempo,
                    avg_energy=feature_summary.avg_energy,
                    avg_danceability=feature_summary.avg_danceability,
                )
                if feature_summary
                else None
            ),
            recent_tracks=[RecentTrackSchema.from_play(p) for p in summary.recent_tracks],
            listening_minutes_recent=summary.listening_minutes_recent,
            estimated_yearly_minutes=summary.estimated_yearly_minutes,
            sessions_count=summary.sessions_count,
            top_albums=[
                AlbumPlayStatsSchema(
                    id=a.id,
                    name=a.name,
                    image=a.image,
                    play_count=a.play_count,
                    minutes=a.minutes,
                )
                for a in summary.top_albums
            ],
            hourly_listening=list(summary.hourly_listening),
            daily_listening=[
                DailyListeningSchema(date=d.date, minutes=d.minutes)
                for d in summary.daily_listening
            ],
            listening_minutes_today=summary.listening_minutes_today,
            listening_minutes_last_7_days=summary.listening_minutes_last_7_days,
            session_count_today=summary.session_count_today,
            window_hours=summary.window_hours,
            missing_sources=list(snapshot.missing_sources),
            generated_at=report.generated_at.isoformat(),
        )
