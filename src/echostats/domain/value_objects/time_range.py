"""Spotify affinity time range for top tracks/artists.

Hey future me - Spotify only understands three values here:
- short_term: roughly the last 4 weeks
- medium_term: roughly the last 6 months
- long_term: several years

Anything else coming in from a query string is COERCED to short_term, never
rejected. A typo in the dashboard URL should still show stats.
"""

from enum import Enum


class TimeRange(str, Enum):
    """Time range for /me/top/* endpoints."""

    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"
    LONG_TERM = "long_term"

    @classmethod
    def coerce(cls, value: "str | TimeRange | None") -> "TimeRange":
        """Parse a raw value, falling back to SHORT_TERM if unknown.

        Args:
            value: Raw value such as "medium_term", "bogus" or None.

        Returns:
            Matching enum value, or SHORT_TERM if not recognized.
        """
        if isinstance(value, TimeRange):
            return value
        if not value:
            return cls.SHORT_TERM
        try:
            return cls(value)
        except ValueError:
            return cls.SHORT_TERM

    def __str__(self) -> str:
        return self.value
