"""Failure policy for the snapshot fan-out."""

from enum import Enum


class FetchPolicy(str, Enum):
    """How the fan-out reacts when one upstream read fails.

    ALL_OR_NOTHING is the default: one failed read fails the whole snapshot.
    BEST_EFFORT degrades the failed source to empty and records its name in
    RawSnapshot.missing_sources. Auth failures (401) are handled the same way
    under both policies.
    """

    ALL_OR_NOTHING = "all_or_nothing"
    BEST_EFFORT = "best_effort"

    @classmethod
    def from_string(cls, value: str | None) -> "FetchPolicy":
        """Parse string to enum, defaulting to ALL_OR_NOTHING if unknown."""
        if not value:
            return cls.ALL_OR_NOTHING
        normalized = value.lower().strip().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.ALL_OR_NOTHING

    def __str__(self) -> str:
        return self.value
