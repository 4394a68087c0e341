"""Hot path observation model using dataclass for low overhead.

Observations are created for every poll of every tracked asset, so the
in-memory form uses:
- @dataclass(slots=True) for minimal memory footprint
- float instead of Decimal for fast arithmetic

Each observation carries two clocks. ``observed_at`` is UTC wall-clock
time and is what gets persisted. ``monotonic`` is a ``time.monotonic()``
reading used only for rate limiting, so wall-clock adjustments can never
let two samples through inside one interval.
"""

import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone


class InvalidObservation(ValueError):
    """Raised when an observation fails boundary validation."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Observation:
    """A single price/volume/transaction sample for one asset."""

    asset_id: str
    price: float
    volume: float = 0.0
    buy_count: int = 0
    sell_count: int = 0
    market_cap: float | None = None
    observed_at: datetime = field(default_factory=_utcnow)
    monotonic: float = field(default_factory=time.monotonic)

    @property
    def buy_sell_ratio(self) -> float:
        """Buy count over sell count (sell count floored at 1)."""
        return self.buy_count / max(self.sell_count, 1)

    @property
    def transaction_count(self) -> int:
        return self.buy_count + self.sell_count


def _is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def validate_observation(observation: Observation) -> None:
    """Check an observation before it enters a series.

    Raises:
        InvalidObservation: non-positive or non-finite price, negative or
            non-finite volume, negative counts or negative market cap.
    """
    asset = observation.asset_id
    if not asset:
        raise InvalidObservation("asset_id must not be empty")
    if not _is_finite_number(observation.price) or observation.price <= 0:
        raise InvalidObservation(f"{asset}: price must be positive, got {observation.price}")
    if not _is_finite_number(observation.volume) or observation.volume < 0:
        raise InvalidObservation(f"{asset}: volume must be >= 0, got {observation.volume}")
    if observation.buy_count < 0 or observation.sell_count < 0:
        raise InvalidObservation(
            f"{asset}: transaction counts must be >= 0, "
            f"got buys={observation.buy_count} sells={observation.sell_count}"
        )
    cap = observation.market_cap
    if cap is not None and (not _is_finite_number(cap) or cap < 0):
        raise InvalidObservation(f"{asset}: market_cap must be >= 0, got {cap}")
