"""Risk parameter and budget allocation models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from pulse_core.models.config import StopCheckpoint


class AllocationStatus(str, Enum):
    """Outcome of a daily budget reservation."""

    FULL = "full"  # Granted the requested amount
    CLAMPED = "clamped"  # Granted what was left of the budget
    EXHAUSTED = "exhausted"  # Nothing left; no buy may proceed
    EMPTY = "empty"  # Nothing was requested


class Allocation(BaseModel):
    """Result of reserving position size from the daily budget."""

    model_config = ConfigDict(frozen=True)

    requested: float
    granted: float
    status: AllocationStatus
    remaining: float

    @property
    def accepted(self) -> bool:
        return self.granted > 0


class TakeProfitTier(BaseModel):
    """Exit ``fraction`` of the remaining position once price is ``pct``
    percent above entry."""

    model_config = ConfigDict(frozen=True)

    pct: float
    fraction: float


class RiskParameters(BaseModel):
    """Sized allocation plus its exit schedule."""

    model_config = ConfigDict(frozen=True)

    position_size: float
    stop_loss_pct: float
    take_profit_tiers: tuple[TakeProfitTier, ...]
    trailing_stop_pct: float
    stop_checkpoints: tuple[StopCheckpoint, ...] = ()
    daily_budget_remaining: float = 0.0
    risk_score: float = 0.0
    volatility: float = 0.0

    @property
    def take_profit_pct(self) -> float:
        """First take-profit level."""
        return self.take_profit_tiers[0].pct

    def time_factor(self, held_seconds: float) -> float:
        """Stop distance multiplier after holding for ``held_seconds``.

        Minimum factor over all passed checkpoints, so the result never
        increases as holding time grows.
        """
        factor = 1.0
        for checkpoint in self.stop_checkpoints:
            if held_seconds >= checkpoint.after_secs:
                factor = min(factor, checkpoint.factor)
        return factor

    def stop_distance_pct(self, held_seconds: float) -> float:
        """Effective stop-loss distance (percent below entry)."""
        return self.stop_loss_pct * self.time_factor(held_seconds)
