"""Position tracker: owns the lifecycle of every open position.

This service:
1. Opens a position when an accepted buy has a nonzero allocation
2. Feeds each new price to the open position (take-profit tiers,
   time-tightened stop, trailing stop)
3. Closes positions on sell signals
4. Notifies exit callbacks and, on close, evicts the asset's history and
   starts its re-entry cooldown

Position state is mutated under a single asyncio.Lock; callbacks and
series eviction run after the lock is released.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

from pulse_app.storage import SeriesStore
from pulse_core.models import (
    ExitEvent,
    ExitReason,
    Position,
    PositionState,
    RiskParameters,
)

logger = logging.getLogger(__name__)

# Type alias for exit callback
ExitCallback = Callable[[ExitEvent], Awaitable[None]]

# Entry block reasons
BLOCK_POSITION_OPEN = "position_open"
BLOCK_COOLDOWN = "cooldown"
BLOCK_ENTRY_PENDING = "entry_pending"


class PositionTracker:
    """Track open positions per asset."""

    def __init__(
        self,
        store: SeriesStore | None = None,
        cooldown_secs: float = 300.0,
        evict_on_close: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            store: Series store whose history is evicted on close
            cooldown_secs: Seconds after a close before the asset may be re-entered
            evict_on_close: Discard the asset's history when a position closes
            clock: Monotonic clock (injectable for tests)
        """
        self.store = store
        self.cooldown_secs = cooldown_secs
        self.evict_on_close = evict_on_close
        self._clock = clock

        self._positions: dict[str, Position] = {}
        self._closed_at: dict[str, float] = {}
        self._pending: set[str] = set()
        self._exit_callbacks: list[ExitCallback] = []

        # Lock for position state
        self._lock = asyncio.Lock()

    def on_exit(self, callback: ExitCallback) -> None:
        """Register callback for exit events.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._exit_callbacks:
            self._exit_callbacks.append(callback)

    def off_exit(self, callback: ExitCallback) -> None:
        """Unregister callback for exit events."""
        if callback in self._exit_callbacks:
            self._exit_callbacks.remove(callback)

    def _block_reason(self, asset_id: str, now: float) -> str | None:
        if asset_id in self._positions:
            return BLOCK_POSITION_OPEN
        if asset_id in self._pending:
            return BLOCK_ENTRY_PENDING
        closed_at = self._closed_at.get(asset_id)
        if closed_at is not None and now - closed_at < self.cooldown_secs:
            return BLOCK_COOLDOWN
        return None

    async def claim_entry(self, asset_id: str) -> str | None:
        """
        Reserve the right to open a position for an asset.

        Must be followed by open() or release_entry().

        Returns:
            None if claimed, otherwise the reason entry is blocked
        """
        async with self._lock:
            reason = self._block_reason(asset_id, self._clock())
            if reason is None:
                self._pending.add(asset_id)
            return reason

    async def release_entry(self, asset_id: str) -> None:
        """Drop an entry claim that did not lead to a position."""
        async with self._lock:
            self._pending.discard(asset_id)

    async def open(
        self,
        asset_id: str,
        entry_price: float,
        params: RiskParameters,
    ) -> Position | None:
        """
        Open a position (NO_POSITION -> ENTERED).

        Returns:
            The new position, or None if entry is blocked
        """
        async with self._lock:
            self._pending.discard(asset_id)
            now = self._clock()
            reason = self._block_reason(asset_id, now)
            if reason is not None:
                logger.info("Entry for %s blocked: %s", asset_id, reason)
                return None
            position = Position.open(asset_id, entry_price, params, now)
            self._positions[asset_id] = position

        logger.info(
            "Entered %s: size=%.4f entry=%.8g stop=%.2f%% trail=%.2f%% tiers=%s",
            asset_id,
            params.position_size,
            entry_price,
            params.stop_loss_pct,
            params.trailing_stop_pct,
            [round(t.pct, 2) for t in params.take_profit_tiers],
        )
        return position

    async def process_price(self, asset_id: str, price: float) -> list[ExitEvent]:
        """
        Apply a price update to an asset's open position.

        Returns:
            Exit events triggered by the price (empty if none)
        """
        async with self._lock:
            position = self._positions.get(asset_id)
            if position is None:
                return []
            now = self._clock()
            events = position.on_price(price, now)
            closed = not position.is_open
            if closed:
                self._finish(asset_id, now)

        if events:
            await self._after_exit(asset_id, events, closed)
        return events

    async def close(
        self,
        asset_id: str,
        reason: ExitReason,
        price: float,
    ) -> ExitEvent | None:
        """
        Close an asset's open position.

        Returns:
            The exit event, or None if no position is open
        """
        async with self._lock:
            position = self._positions.get(asset_id)
            if position is None:
                return None
            now = self._clock()
            event = position.close(reason, price, now)
            self._finish(asset_id, now)

        await self._after_exit(asset_id, [event], closed=True)
        return event

    def _finish(self, asset_id: str, now: float) -> None:
        """Remove a closed position. Must be called under the lock."""
        del self._positions[asset_id]
        self._closed_at[asset_id] = now

    async def _after_exit(self, asset_id: str, events: list[ExitEvent], closed: bool) -> None:
        """Log, notify callbacks and evict history (outside the lock)."""
        for event in events:
            logger.info(
                "Exit %s %s: size=%.4f price=%.8g remaining=%.4f (%s)",
                asset_id,
                event.reason.value,
                event.size,
                event.price,
                event.remaining,
                event.state.value,
            )
            for callback in self._exit_callbacks:
                try:
                    await callback(event)
                except Exception as e:
                    logger.error("Exit callback error: %s", e)

        if closed and self.evict_on_close and self.store is not None:
            await self.store.evict(asset_id)

    def state(self, asset_id: str) -> PositionState:
        position = self._positions.get(asset_id)
        if position is None:
            return PositionState.NO_POSITION
        return position.state

    def get_position(self, asset_id: str) -> Position | None:
        return self._positions.get(asset_id)

    def get_position_status(self, asset_id: str) -> dict | None:
        """Get current status of an open position."""
        position = self._positions.get(asset_id)
        if position is None:
            return None
        now = self._clock()
        return {
            "asset_id": asset_id,
            "state": position.state.value,
            "entry_price": position.entry_price,
            "size": position.size,
            "remaining": position.remaining,
            "stop_level": position.stop_level(now),
            "trailing_level": position.trailing.level,
            "effective_stop": position.effective_stop(now),
            "next_tier": position.next_tier,
            "held_seconds": position.held_seconds(now),
        }

    @property
    def active_count(self) -> int:
        """Get total number of open positions."""
        return len(self._positions)
