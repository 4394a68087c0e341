"""Long position lifecycle model.

State machine::

    NO_POSITION -> ENTERED -> {PARTIAL_EXIT}* -> CLOSED

- ENTERED -> PARTIAL_EXIT when price crosses a take-profit tier and some
  size remains
- ENTERED | PARTIAL_EXIT -> CLOSED when price crosses the effective stop
  (time-tightened stop-loss or trailing stop, whichever is higher), a sell
  signal closes it, or the remaining size reaches zero

CLOSED is terminal. Re-entry creates a new Position.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from pulse_core.models.risk import RiskParameters


class PositionState(str, Enum):
    NO_POSITION = "no_position"
    ENTERED = "entered"
    PARTIAL_EXIT = "partial_exit"
    CLOSED = "closed"


class ExitReason(str, Enum):
    TAKE_PROFIT = "take_profit"
    STOP_LOSS = "stop_loss"
    TRAILING_STOP = "trailing_stop"
    SELL_SIGNAL = "sell_signal"


@dataclass(slots=True)
class ExitEvent:
    """A full or partial exit."""

    asset_id: str
    reason: ExitReason
    price: float
    size: float  # Size exited by this event
    remaining: float  # Size still held afterwards
    state: PositionState
    timestamp: float
    tier: int | None = None  # Take-profit tier index

    @property
    def closed(self) -> bool:
        return self.state == PositionState.CLOSED


class TrailingStop:
    """Trailing stop for a long position.

    The level follows price up at a fixed percentage below it and never
    moves down.
    """

    __slots__ = ("trail_pct", "level")

    def __init__(self, trail_pct: float, initial_price: float):
        if not 0 < trail_pct < 100:
            raise ValueError(f"trail_pct must be within (0, 100), got {trail_pct}")
        self.trail_pct = trail_pct
        self.level = initial_price * (1 - trail_pct / 100)

    def update(self, price: float) -> float:
        """Feed a new price and return the (possibly raised) level."""
        candidate = price * (1 - self.trail_pct / 100)
        if candidate > self.level:
            self.level = candidate
        return self.level

    def is_hit(self, price: float) -> bool:
        return price <= self.level


@dataclass(slots=True)
class Position:
    """An open (or closed) long position for one asset."""

    asset_id: str
    entry_price: float
    size: float
    remaining: float
    params: RiskParameters
    entered_at: float  # Monotonic seconds
    trailing: TrailingStop
    state: PositionState = PositionState.ENTERED
    high_water: float = 0.0
    next_tier: int = 0
    exits: list[ExitEvent] = field(default_factory=list)

    @classmethod
    def open(
        cls,
        asset_id: str,
        entry_price: float,
        params: RiskParameters,
        now: float,
    ) -> "Position":
        """Enter a new position sized by ``params.position_size``."""
        if entry_price <= 0:
            raise ValueError(f"entry_price must be positive, got {entry_price}")
        if params.position_size <= 0:
            raise ValueError("cannot open a position with zero size")
        return cls(
            asset_id=asset_id,
            entry_price=entry_price,
            size=params.position_size,
            remaining=params.position_size,
            params=params,
            entered_at=now,
            trailing=TrailingStop(params.trailing_stop_pct, entry_price),
            high_water=entry_price,
        )

    @property
    def is_open(self) -> bool:
        return self.state in (PositionState.ENTERED, PositionState.PARTIAL_EXIT)

    def held_seconds(self, now: float) -> float:
        return max(0.0, now - self.entered_at)

    def stop_level(self, now: float) -> float:
        """Time-tightened fixed stop price."""
        distance = self.params.stop_distance_pct(self.held_seconds(now))
        return self.entry_price * (1 - distance / 100)

    def effective_stop(self, now: float) -> float:
        return max(self.stop_level(now), self.trailing.level)

    def tier_price(self, index: int) -> float:
        return self.entry_price * (1 + self.params.take_profit_tiers[index].pct / 100)

    def on_price(self, price: float, now: float) -> list[ExitEvent]:
        """Apply a price update.

        Returns:
            Exit events triggered by this price (empty if none)
        """
        if not self.is_open:
            return []

        self.trailing.update(price)
        if price > self.high_water:
            self.high_water = price

        stop = self.stop_level(now)
        if price <= max(stop, self.trailing.level):
            reason = (
                ExitReason.TRAILING_STOP
                if self.trailing.level > stop
                else ExitReason.STOP_LOSS
            )
            return [self.close(reason, price, now)]

        events: list[ExitEvent] = []
        tiers = self.params.take_profit_tiers
        while self.next_tier < len(tiers) and price >= self.tier_price(self.next_tier):
            tier = tiers[self.next_tier]
            exit_size = self.remaining * tier.fraction
            self.remaining -= exit_size
            if tier.fraction >= 1 or math.isclose(self.remaining, 0.0, abs_tol=1e-12):
                self.remaining = 0.0
            self.state = (
                PositionState.CLOSED if self.remaining == 0 else PositionState.PARTIAL_EXIT
            )
            event = ExitEvent(
                asset_id=self.asset_id,
                reason=ExitReason.TAKE_PROFIT,
                price=price,
                size=exit_size,
                remaining=self.remaining,
                state=self.state,
                timestamp=now,
                tier=self.next_tier,
            )
            self.exits.append(event)
            events.append(event)
            self.next_tier += 1
            if self.state == PositionState.CLOSED:
                break

        return events

    def close(self, reason: ExitReason, price: float, now: float) -> ExitEvent:
        """Exit everything that remains."""
        if not self.is_open:
            raise ValueError(f"position {self.asset_id} is already closed")
        event = ExitEvent(
            asset_id=self.asset_id,
            reason=reason,
            price=price,
            size=self.remaining,
            remaining=0.0,
            state=PositionState.CLOSED,
            timestamp=now,
        )
        self.remaining = 0.0
        self.state = PositionState.CLOSED
        self.exits.append(event)
        return event
