"""Listening stats service - fetch + aggregate for one request."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from echostats.application.services.credential_store import CredentialStore
from echostats.application.services.listening_aggregator import ListeningAggregator
from echostats.application.services.snapshot_fetcher import SnapshotFetcher
from echostats.domain.entities import DerivedSummary, RawSnapshot
from echostats.domain.exceptions import AggregationError, UpstreamAuthError
from echostats.domain.value_objects.time_range import TimeRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsReport:
    """What one stats request produced: the snapshot and its summary."""

    snapshot: RawSnapshot
    summary: DerivedSummary
    generated_at: datetime


class ListeningStatsService:
    """Composes SnapshotFetcher and ListeningAggregator."""

    def __init__(self, fetcher: SnapshotFetcher, aggregator: ListeningAggregator) -> None:
        self._fetcher = fetcher
        self._aggregator = aggregator

    async def get_summary(
        self,
        store: CredentialStore,
        time_range: "TimeRange | str | None" = None,
        now: datetime | None = None,
    ) -> StatsReport:
        """Fetch the snapshot and aggregate it.

        Args:
            store: Credential store of the requesting session; may be refreshed
                (and is cleared on terminal auth failure)
            time_range: Requested affinity range, coerced to a known value
            now: Reference instant for the recency windows, defaults to the current time

        Returns:
            StatsReport

        Raises:
            UpstreamAuthError: Re-authentication required
            UpstreamError: Upstream failure
            AggregationError: Unexpected failure while aggregating
        """
        try:
            snapshot = await self._fetcher.fetch_snapshot(store, time_range)
        except UpstreamAuthError as e:
            if e.requires_reauth:
                # The pair is dead; the client has to log in again
                store.clear()
            else:
                # Token endpoint unreachable: the pair may still be good
                logger.warning("Token refresh did not complete: %s", e.message)
            raise

        reference = now or datetime.now(UTC)
        try:
            summary = self._aggregator.aggregate(snapshot, reference)
        except Exception as e:
            logger.exception("Aggregation failed")
            raise AggregationError(f"Failed to aggregate listening stats: {e}") from e

        return StatsReport(snapshot=snapshot, summary=summary, generated_at=reference)
