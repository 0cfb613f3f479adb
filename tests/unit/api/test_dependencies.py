"""Tests for the API dependencies."""

from datetime import timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from echostats.api.dependencies import (
    get_aggregator,
    get_credential_store,
    get_spotify_client,
    get_stats_service,
    get_token_manager,
    parse_bearer_token,
)
from echostats.config import Settings
from echostats.config.settings import StatsSettings
from echostats.domain.exceptions import ValidationError
from echostats.domain.value_objects.fetch_policy import FetchPolicy


def _request_with_state(**state: object) -> SimpleNamespace:
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(**state)))


class TestParseBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("BEARER  abc ", "abc"),
            ("Bearer", None),
            ("Bearer ", None),
            ("Basic abc", None),
            ("abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, header: str | None, expected: str | None) -> None:
        assert parse_bearer_token(header) == expected


class TestCredentialStoreDependency:
    async def test_builds_store_from_headers(self) -> None:
        store = await get_credential_store("Bearer at-1", "rt-1")

        assert store.access_token == "at-1"
        assert store.refresh_token == "rt-1"
        assert not store.was_refreshed

    async def test_refresh_token_is_optional(self) -> None:
        store = await get_credential_store("Bearer at-1", "  ")

        assert store.refresh_token is None

    async def test_missing_bearer_is_401(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await get_credential_store(None, "rt-1")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Missing Bearer token"


class TestAppStateDependencies:
    def test_missing_token_manager_is_503(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            get_token_manager(_request_with_state())  # type: ignore[arg-type]

        assert exc_info.value.status_code == 503

    def test_missing_spotify_client_is_503(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            get_spotify_client(_request_with_state())  # type: ignore[arg-type]

        assert exc_info.value.status_code == 503

    def test_returns_state_objects(self) -> None:
        manager, client = object(), object()
        request = _request_with_state(token_manager=manager, spotify_client=client)

        assert get_token_manager(request) is manager  # type: ignore[arg-type]
        assert get_spotify_client(request) is client  # type: ignore[arg-type]


class TestServiceComposition:
    def test_aggregator_uses_stats_settings(self) -> None:
        settings = Settings(
            stats=StatsSettings(
                timezone="Europe/Berlin", recent_window_hours=24, session_gap_minutes=15
            )
        )

        aggregator = get_aggregator(settings)

        assert aggregator.config.timezone == ZoneInfo("Europe/Berlin")
        assert aggregator.config.session_gap == timedelta(minutes=15)
        assert aggregator.config.recent_window.describe() == "24h"

    def test_stats_service_uses_fetch_policy(self) -> None:
        settings = Settings(stats=StatsSettings(fetch_policy=FetchPolicy.BEST_EFFORT))

        service = get_stats_service(
            client=object(),  # type: ignore[arg-type]
            token_manager=object(),  # type: ignore[arg-type]
            aggregator=get_aggregator(settings),
            settings=settings,
        )

        assert service._fetcher.policy is FetchPolicy.BEST_EFFORT
