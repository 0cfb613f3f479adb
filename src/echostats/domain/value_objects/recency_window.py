"""Recency window value object for filtering recently-played items.

Hey future me - the dashboard has used three different windows over time:
"last 48 hours", "today" and "last 7 days". The window is a PARAMETER of
the aggregation, never a constant buried in the math. Every variant resolves
to a concrete [start, end] pair for a given `now` and timezone, so the same
filter, totals and session code works for all of them.

"today" depends on the timezone: local midnight in Berlin is not local
midnight in UTC. That's why bounds() takes a tzinfo.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum


class WindowKind(str, Enum):
    """Variant of a recency window."""

    LAST_HOURS = "last_hours"
    TODAY = "today"
    LAST_DAYS = "last_days"


@dataclass(frozen=True)
class RecencyWindow:
    """A lookback window ending at `now`.

    Attributes:
        kind: Which variant this window is
        amount: Hours for LAST_HOURS, days for LAST_DAYS, unused for TODAY
    """

    kind: WindowKind
    amount: float = 0.0

    def __post_init__(self) -> None:
        if self.kind is not WindowKind.TODAY and self.amount <= 0:
            raise ValueError(f"{self.kind.value} window needs a positive amount")

    @classmethod
    def last_hours(cls, hours: float) -> "RecencyWindow":
        """Window covering the last `hours` hours."""
        return cls(WindowKind.LAST_HOURS, float(hours))

    @classmethod
    def today(cls) -> "RecencyWindow":
        """Window from local midnight until now."""
        return cls(WindowKind.TODAY)

    @classmethod
    def last_days(cls, days: float) -> "RecencyWindow":
        """Window covering the last `days` days."""
        return cls(WindowKind.LAST_DAYS, float(days))

    def bounds(self, now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
        """Resolve the window to an inclusive [start, end] pair.

        Args:
            now: Timezone-aware reference instant (end of the window)
            tz: Timezone used to find local midnight for TODAY

        Returns:
            Tuple of (start, end), both timezone-aware
        """
        if self.kind is WindowKind.TODAY:
            local_now = now.astimezone(tz)
            start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
            return start, now
        if self.kind is WindowKind.LAST_DAYS:
            return now - timedelta(days=self.amount), now
        return now - timedelta(hours=self.amount), now

    def length_hours(self, now: datetime, tz: tzinfo) -> float:
        """Length of the resolved window in hours."""
        start, end = self.bounds(now, tz)
        return (end - start).total_seconds() / 3600

    def describe(self) -> str:
        """Short human label, e.g. '48h', 'today', '7d'."""
        if self.kind is WindowKind.TODAY:
            return "today"
        if self.kind is WindowKind.LAST_DAYS:
            return f"{self.amount:g}d"
        return f"{self.amount:g}h"
