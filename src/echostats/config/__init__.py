"""Configuration module for echostats."""

from .settings import (
    ObservabilitySettings,
    Settings,
    SpotifySettings,
    StatsSettings,
    get_settings,
)

__all__ = [
    "ObservabilitySettings",
    "Settings",
    "SpotifySettings",
    "StatsSettings",
    "get_settings",
]
