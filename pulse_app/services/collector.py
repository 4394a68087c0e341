"""Periodic observation collection.

One asyncio task per tracked asset:
1. Fetch the latest observation from the ObservationSource
2. Record it in the SeriesStore (validation + rate limiting happen there)
3. Notify registered callbacks for recorded observations
4. Sleep for the collection interval

Cancelling a task (untrack/stop) is safe at any await point: the store
appends one observation per call under its lock, so no partial write can
be left behind.
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Iterable

from pulse_app.clients.protocol import ObservationSource
from pulse_app.storage import RecordResult, SeriesStore
from pulse_core.models import Observation

logger = logging.getLogger(__name__)

# Type alias for observation callback
ObservationCallback = Callable[[Observation], Awaitable[None]]


class Collector:
    """Samples an observation source for every tracked asset."""

    def __init__(
        self,
        source: ObservationSource,
        store: SeriesStore,
        interval: float | None = None,
    ):
        """
        Args:
            source: External observation source
            store: Series store to record into
            interval: Seconds between polls (defaults to the store's interval)
        """
        self.source = source
        self.store = store
        self.interval = store.interval if interval is None else interval

        self._tasks: dict[str, asyncio.Task] = {}
        self._callbacks: list[ObservationCallback] = []

        # Counters for monitoring
        self.recorded_count = 0
        self.rate_limited_count = 0
        self.rejected_count = 0
        self.error_count = 0

    def on_observation(self, callback: ObservationCallback) -> None:
        """Register callback for recorded observations.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_observation(self, callback: ObservationCallback) -> None:
        """Unregister callback for recorded observations."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @property
    def tracked(self) -> list[str]:
        return sorted(a for a, t in self._tasks.items() if not t.done())

    def is_tracking(self, asset_id: str) -> bool:
        task = self._tasks.get(asset_id)
        return task is not None and not task.done()

    async def start(self, assets: Iterable[str] = ()) -> None:
        """Start collection for an initial set of assets."""
        for asset_id in assets:
            self.track(asset_id)
        logger.info("Collector started for %d assets (interval=%.1fs)", len(self.tracked), self.interval)

    async def stop(self) -> None:
        """Cancel every collection task and wait for them to finish."""
        for asset_id in list(self._tasks):
            await self.untrack(asset_id)
        logger.info("Collector stopped")

    def track(self, asset_id: str) -> bool:
        """
        Start collecting an asset.

        Returns:
            False if the asset is already being collected
        """
        if self.is_tracking(asset_id):
            return False
        self._tasks[asset_id] = asyncio.create_task(
            self._run(asset_id), name=f"collector:{asset_id}"
        )
        logger.info("Tracking %s", asset_id)
        return True

    async def untrack(self, asset_id: str) -> bool:
        """
        Stop collecting an asset.

        Returns:
            False if the asset was not being collected
        """
        task = self._tasks.pop(asset_id, None)
        if task is None:
            return False
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Stopped tracking %s", asset_id)
        return True

    async def collect_once(self, asset_id: str) -> RecordResult | None:
        """
        Fetch and record one observation.

        Returns:
            RecordResult, or None if the source had nothing or failed
        """
        try:
            observation = await self.source.fetch(asset_id)
        except Exception as e:
            self.error_count += 1
            logger.warning("Fetch failed for %s: %s", asset_id, e)
            return None

        if observation is None:
            return None

        result = await self.store.record(observation)

        if result == RecordResult.RECORDED:
            self.recorded_count += 1
            for callback in self._callbacks:
                try:
                    await callback(observation)
                except Exception as e:
                    logger.error("Observation callback error for %s: %s", asset_id, e)
        elif result == RecordResult.RATE_LIMITED:
            self.rate_limited_count += 1
        else:
            self.rejected_count += 1

        return result

    async def _run(self, asset_id: str) -> None:
        while True:
            await self.collect_once(asset_id)
            await asyncio.sleep(self.interval)
