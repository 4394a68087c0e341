"""Converters between hot path (Observation) and cold path (ObservationRecord).

Hot path observations carry a monotonic clock reading that has no meaning
outside the running process. When a record is turned back into an
observation, its wall-clock timestamp is mapped into the current process's
monotonic frame::

    monotonic = record_ts + (time.monotonic() - time.time())

so replayed history and live observations share one rate-limiting clock,
and the spacing between replayed records is preserved.
"""

import time
from datetime import datetime, timezone

from pulse_core.models.fast import Observation
from pulse_core.models.observation import ObservationRecord


def datetime_to_timestamp(dt: datetime) -> float:
    """Convert datetime to Unix timestamp (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def timestamp_to_datetime(ts: float) -> datetime:
    """Convert Unix timestamp to UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def monotonic_offset() -> float:
    """Offset that maps a Unix timestamp onto this process's monotonic clock."""
    return time.monotonic() - time.time()


def observation_to_record(observation: Observation) -> ObservationRecord:
    """Convert a hot path Observation to its persisted form."""
    return ObservationRecord(
        asset_id=observation.asset_id,
        timestamp=observation.observed_at,
        price=observation.price,
        volume=observation.volume,
        buy_count=observation.buy_count,
        sell_count=observation.sell_count,
        market_cap=observation.market_cap,
    )


def record_to_observation(
    record: ObservationRecord,
    monotonic: float | None = None,
    clock_offset: float | None = None,
) -> Observation:
    """Convert a persisted record back to a hot path Observation.

    Args:
        record: Persisted observation
        monotonic: Explicit ordering key; overrides the clock mapping
        clock_offset: Result of monotonic_offset() to share across a batch,
            so records keep their exact relative spacing
    """
    observed_at = record.timestamp
    if observed_at.tzinfo is None:
        observed_at = observed_at.replace(tzinfo=timezone.utc)
    if monotonic is None:
        if clock_offset is None:
            clock_offset = monotonic_offset()
        monotonic = datetime_to_timestamp(observed_at) + clock_offset
    return Observation(
        asset_id=record.asset_id,
        price=record.price,
        volume=record.volume,
        buy_count=record.buy_count,
        sell_count=record.sell_count,
        market_cap=record.market_cap,
        observed_at=observed_at,
        monotonic=monotonic,
    )
