"""Domain value objects."""

from echostats.domain.value_objects.fetch_policy import FetchPolicy
from echostats.domain.value_objects.image_ref import (
    COVER_FALLBACK_ORDER,
    Image,
    pick_image_url,
)
from echostats.domain.value_objects.recency_window import RecencyWindow, WindowKind
from echostats.domain.value_objects.time_range import TimeRange

__all__ = [
    "COVER_FALLBACK_ORDER",
    "FetchPolicy",
    "Image",
    "RecencyWindow",
    "TimeRange",
    "WindowKind",
    "pick_image_url",
]
