"""Tests for the tolerant upstream parsers and CredentialPair."""

from datetime import UTC, datetime

from echostats.domain.entities import (
    CredentialPair,
    PlayHistoryItem,
    RawSnapshot,
    Track,
    parse_timestamp,
)
from echostats.domain.value_objects.time_range import TimeRange


class TestCredentialPair:
    def test_from_token_response(self) -> None:
        pair = CredentialPair.from_token_response(
            {
                "access_token": "at",
                "refresh_token": "rt",
                "expires_in": 3600,
                "token_type": "Bearer",
                "scope": "user-top-read",
            }
        )

        assert pair.access_token == "at"
        assert pair.refresh_token == "rt"
        assert pair.expires_in == 3600
        assert pair.scope == "user-top-read"

    def test_missing_refresh_token_falls_back(self) -> None:
        pair = CredentialPair.from_token_response({"access_token": "at"}, fallback_refresh_token="old")

        assert pair.refresh_token == "old"
        assert pair.to_token_response() == {"access_token": "at", "refresh_token": "old"}

    def test_token_response_is_upstream_payload(self) -> None:
        payload = {"access_token": "at", "refresh_token": "rt", "expires_in": 3600, "extra": 1}

        assert CredentialPair.from_token_response(payload).to_token_response() == payload

    def test_tokens_are_not_in_repr(self) -> None:
        pair = CredentialPair(access_token="secret-at", refresh_token="secret-rt")

        assert "secret" not in repr(pair)


class TestParsing:
    def test_parse_timestamp(self) -> None:
        assert parse_timestamp("2024-03-10T17:30:00.123Z") == datetime(
            2024, 3, 10, 17, 30, 0, 123000, tzinfo=UTC
        )
        assert parse_timestamp("2024-03-10T17:30:00") == datetime(2024, 3, 10, 17, 30, tzinfo=UTC)
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_track_tolerates_missing_fields(self) -> None:
        track = Track.from_api({"id": "t1"})

        assert track is not None
        assert track.duration_ms == 0
        assert track.album is None
        assert track.artist_names == ()

    def test_local_file_play_without_track(self) -> None:
        item = PlayHistoryItem.from_api({"played_at": "2024-03-10T17:30:00Z", "track": None})

        assert item is not None
        assert item.track is None
        assert item.duration_ms == 0
        assert item.album_id is None

    def test_snapshot_from_api_skips_garbage_items(self) -> None:
        snapshot = RawSnapshot.from_api(
            time_range=TimeRange.LONG_TERM,
            profile="not a dict",
            top_tracks={"items": [{"id": "t1"}, None, 42]},
            top_artists=None,
            playlists={"items": [{"id": "p", "name": "P"}]},
            audio_features={"audio_features": [None, {"id": "t1", "tempo": 90}]},
        )

        assert snapshot.profile is None
        assert snapshot.top_track_ids == ["t1"]
        assert snapshot.top_artists == ()
        assert snapshot.playlists[0].tracks_total == 0
        assert snapshot.audio_features[0] is None
        assert snapshot.audio_features[1] is not None
        assert snapshot.audio_features[1].energy == 0.0

    def test_snapshots_with_same_content_are_equal(self) -> None:
        body = {"items": [{"id": "t1", "name": "Song", "duration_ms": 1000}]}

        assert RawSnapshot.from_api(top_tracks=body) == RawSnapshot.from_api(top_tracks=body)
