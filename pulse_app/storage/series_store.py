"""Bounded per-asset observation history.

Each asset has a FIFO ring buffer (deque with maxlen) guarded by its own
asyncio.Lock. The lock is held only to append one observation or to copy
the buffer; indicator math, network calls and sleeps always happen on the
copied tuple, outside the lock, so one asset can never stall another.

Rate limiting uses the observation's monotonic clock: an observation is
appended only if at least ``interval`` seconds passed since the last
recorded one. Earlier observations are dropped silently.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from enum import Enum

from pulse_core.models import InvalidObservation, Observation, validate_observation

logger = logging.getLogger(__name__)


class RecordResult(str, Enum):
    """Outcome of SeriesStore.record()."""

    RECORDED = "recorded"
    RATE_LIMITED = "rate_limited"
    INVALID = "invalid"


class SeriesStore:
    """In-memory observation history for every tracked asset."""

    def __init__(self, capacity: int = 100, interval: float = 15.0):
        """
        Args:
            capacity: Maximum observations kept per asset (oldest evicted first)
            interval: Minimum seconds between recorded observations
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.capacity = capacity
        self.interval = interval

        self._series: dict[str, deque[Observation]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Wall-clock time of the first accepted observation, kept across evict()
        self._first_seen: dict[str, datetime] = {}

    def _lock_for(self, asset_id: str) -> asyncio.Lock:
        lock = self._locks.get(asset_id)
        if lock is None:
            lock = self._locks[asset_id] = asyncio.Lock()
        return lock

    async def record(self, observation: Observation) -> RecordResult:
        """
        Append an observation to its asset's series.

        Invalid observations are logged and rejected; observations arriving
        within ``interval`` of the last recorded one are dropped.

        Returns:
            RecordResult
        """
        try:
            validate_observation(observation)
        except InvalidObservation as e:
            logger.warning("Rejected observation: %s", e)
            return RecordResult.INVALID

        asset_id = observation.asset_id
        async with self._lock_for(asset_id):
            series = self._series.get(asset_id)
            if series is None:
                series = self._series[asset_id] = deque(maxlen=self.capacity)
            elif series and observation.monotonic - series[-1].monotonic < self.interval:
                return RecordResult.RATE_LIMITED
            series.append(observation)
            self._first_seen.setdefault(asset_id, observation.observed_at)

        return RecordResult.RECORDED

    async def snapshot(self, asset_id: str) -> tuple[Observation, ...]:
        """Immutable copy of an asset's series (empty if unknown)."""
        if asset_id not in self._series:
            return ()
        async with self._lock_for(asset_id):
            series = self._series.get(asset_id)
            return tuple(series) if series else ()

    async def prices(self, asset_id: str) -> list[float]:
        """Copied price window, most recent last."""
        return [o.price for o in await self.snapshot(asset_id)]

    async def evict(self, asset_id: str) -> int:
        """
        Drop an asset's entire series.

        Returns:
            Number of observations removed
        """
        async with self._lock_for(asset_id):
            series = self._series.pop(asset_id, None)
        removed = len(series) if series else 0
        if removed:
            logger.info("Evicted %d observations for %s", removed, asset_id)
        return removed

    async def forget(self, asset_id: str) -> None:
        """Drop the series, lock and first-seen time of an asset."""
        await self.evict(asset_id)
        self._first_seen.pop(asset_id, None)
        self._locks.pop(asset_id, None)

    def first_seen(self, asset_id: str) -> datetime | None:
        """Wall-clock time the asset was first recorded (survives evict)."""
        return self._first_seen.get(asset_id)

    def size(self, asset_id: str) -> int:
        series = self._series.get(asset_id)
        return len(series) if series else 0

    def assets(self) -> list[str]:
        return sorted(self._series)

    def __len__(self) -> int:
        return len(self._series)
