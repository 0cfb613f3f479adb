"""Application services."""

from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.listening_aggregator import (
    AggregationConfig,
    ListeningAggregator,
    aggregate,
)
from echostats.application.services.snapshot_fetcher import SnapshotFetcher
from echostats.application.services.spotify_auth_service import SpotifyAuthService
from echostats.application.services.stats_service import ListeningStatsService, StatsReport
from echostats.application.services.token_manager import TokenManager

__all__ = [
    "AggregationConfig",
    "CredentialStore",
    "ListeningAggregator",
    "ListeningStatsService",
    "SnapshotFetcher",
    "SpotifyAuthService",
    "StatsReport",
    "TokenManager",
    "aggregate",
]
