"""Tests for GET /stats/summary.

The whole chain runs for real (credential store, fetcher, token manager, aggregator);
only Spotify is replaced by an httpx.MockTransport handler.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from conftest import artist_json, paging, play_json, track_json
from fastapi.testclient import TestClient

from echostats.api.dependencies import get_spotify_client, get_token_manager
from echostats.application.services.spotify_auth_service import SpotifyAuthService
from echostats.application.services.token_manager import TokenManager
from echostats.config import Settings, get_settings
from echostats.config.settings import StatsSettings
from echostats.domain.value_objects.fetch_policy import FetchPolicy
from echostats.infrastructure.integrations.spotify_client import SpotifyClient
from echostats.main import create_app

FRESH_TOKEN = "fresh-token"  # nosec B105


def _spotify_data(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/v1/me":
        return httpx.Response(200, json={"id": "user-1", "display_name": "Listener"})
    if path == "/v1/me/top/tracks":
        return httpx.Response(200, json=paging([track_json("t1"), track_json("t2")]))
    if path == "/v1/me/top/artists":
        return httpx.Response(
            200,
            json=paging(
                [artist_json("a1", ["Indie Rock", "pop"]), artist_json("a2", ["indie rock"])]
            ),
        )
    if path == "/v1/me/player/recently-played":
        now = datetime.now(UTC)
        return httpx.Response(
            200,
            json=paging(
                [play_json(now - timedelta(minutes=10)), play_json(now - timedelta(minutes=20))]
            ),
        )
    if path == "/v1/me/playlists":
        return httpx.Response(200, json=paging([{"id": "p1", "name": "Mix"}]))
    if path == "/v1/audio-features":
        return httpx.Response(
            200,
            json={
                "audio_features": [
                    {"id": "t1", "tempo": 120.0, "energy": 0.5, "danceability": 0.7},
                    {"id": "t2", "tempo": 120.0, "energy": 0.5, "danceability": 0.7},
                ]
            },
        )
    return httpx.Response(404, json={"error": {"status": 404, "message": "not found"}})


def _token_endpoint(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200, json={"access_token": FRESH_TOKEN, "refresh_token": "rotated", "expires_in": 3600}
    )


def _expired_unless_fresh(request: httpx.Request) -> httpx.Response:
    if request.url.host == "accounts.spotify.com":
        return _token_endpoint(request)
    if request.headers["Authorization"] != f"Bearer {FRESH_TOKEN}":
        return httpx.Response(401, json={"error": {"status": 401, "message": "expired"}})
    return _spotify_data(request)


@pytest.fixture
def seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def client_for(
    make_spotify_client: Callable[..., SpotifyClient], seen: list[httpx.Request]
) -> Callable[..., TestClient]:
    def _build(
        handler: Callable[[httpx.Request], httpx.Response],
        fetch_policy: FetchPolicy = FetchPolicy.ALL_OR_NOTHING,
    ) -> TestClient:
        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        spotify = make_spotify_client(_record)
        token_manager = TokenManager(SpotifyAuthService(spotify))
        settings = Settings(stats=StatsSettings(fetch_policy=fetch_policy))
        app = create_app(settings)
        app.dependency_overrides[get_spotify_client] = lambda: spotify
        app.dependency_overrides[get_token_manager] = lambda: token_manager
        app.dependency_overrides[get_settings] = lambda: settings
        return TestClient(app)

    return _build


class TestStatsSummary:
    def test_summary_is_camel_case(self, client_for: Callable[..., TestClient]) -> None:
        client = client_for(_spotify_data)

        response = client.get(
            "/stats/summary",
            params={"time_range": "long_term"},
            headers={"Authorization": "Bearer valid"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["timeRange"] == "long_term"
        assert body["profile"]["display_name"] == "Listener"
        assert [t["id"] for t in body["topTracks"]["items"]] == ["t1", "t2"]
        assert body["playlists"]["items"][0]["name"] == "Mix"
        assert body["topGenres"] == [
            {"genre": "indie rock", "count": 2},
            {"genre": "pop", "count": 1},
        ]
        assert body["audioFeatureSummary"] == {
            "avgTempo": 120,
            "avgEnergy": 50,
            "avgDanceability": 70,
        }
        assert body["listeningMinutesRecent"] == 6
        assert body["sessionsCount"] == 1
        assert body["windowHours"] == 48
        assert len(body["hourlyListening"]) == 24
        assert body["topAlbums"][0]["playCount"] == 2
        assert body["topAlbums"][0]["image"] == "https://img/album-1/300"
        assert len(body["recentTracks"]) == 2
        assert "played_at" in body["recentTracks"][0]
        assert body["missingSources"] == []
        # No refresh happened
        assert "X-Access-Token" not in response.headers

    def test_unknown_time_range_falls_back_to_short_term(
        self, client_for: Callable[..., TestClient], seen: list[httpx.Request]
    ) -> None:
        client = client_for(_spotify_data)

        response = client.get(
            "/stats/summary", params={"time_range": "forever"}, headers={"Authorization": "Bearer x"}
        )

        assert response.json()["timeRange"] == "short_term"
        top = [r for r in seen if r.url.path == "/v1/me/top/tracks"]
        assert top[0].url.params["time_range"] == "short_term"

    @pytest.mark.parametrize("authorization", [None, "", "Basic abc", "Bearer", "Bearer   "])
    def test_missing_bearer_is_401(
        self,
        client_for: Callable[..., TestClient],
        seen: list[httpx.Request],
        authorization: str | None,
    ) -> None:
        client = client_for(_spotify_data)
        headers = {"Authorization": authorization} if authorization is not None else {}

        response = client.get("/stats/summary", headers=headers)

        assert response.status_code == 401
        assert response.json() == {"error": "Missing Bearer token"}
        assert seen == []

    def test_expired_token_is_refreshed_once(
        self, client_for: Callable[..., TestClient], seen: list[httpx.Request]
    ) -> None:
        client = client_for(_expired_unless_fresh)

        response = client.get(
            "/stats/summary",
            headers={"Authorization": "Bearer expired", "X-Refresh-Token": "rt-1"},
        )

        assert response.status_code == 200
        assert response.headers["X-Access-Token"] == FRESH_TOKEN
        assert response.headers["X-Refresh-Token"] == "rotated"
        token_calls = [r for r in seen if r.url.host == "accounts.spotify.com"]
        assert len(token_calls) == 1

    def test_expired_token_without_refresh_token_is_401(
        self, client_for: Callable[..., TestClient], seen: list[httpx.Request]
    ) -> None:
        client = client_for(_expired_unless_fresh)

        response = client.get("/stats/summary", headers={"Authorization": "Bearer expired"})

        assert response.status_code == 401
        assert response.json() == {"error": "Re-authentication required"}
        assert not [r for r in seen if r.url.host == "accounts.spotify.com"]

    def test_rejected_refresh_is_401(self, client_for: Callable[..., TestClient]) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "accounts.spotify.com":
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(401, json={"error": {"status": 401, "message": "expired"}})

        client = client_for(_handler)

        response = client.get(
            "/stats/summary",
            headers={"Authorization": "Bearer expired", "X-Refresh-Token": "revoked"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Re-authentication required"}

    def test_upstream_failure_is_500(self, client_for: Callable[..., TestClient]) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/me/playlists":
                return httpx.Response(503, text="unavailable")
            return _spotify_data(request)

        client = client_for(_handler)

        response = client.get("/stats/summary", headers={"Authorization": "Bearer valid"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch stats"}
        assert "unavailable" not in response.text

    def test_best_effort_reports_missing_sources(
        self, client_for: Callable[..., TestClient]
    ) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/me/playlists":
                return httpx.Response(503, text="unavailable")
            return _spotify_data(request)

        client = client_for(_handler, fetch_policy=FetchPolicy.BEST_EFFORT)

        response = client.get("/stats/summary", headers={"Authorization": "Bearer valid"})

        assert response.status_code == 200
        assert response.json()["missingSources"] == ["playlists"]
        assert response.json()["playlists"] == {"items": []}
