"""Signal and market context models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    """Signal direction."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class FactorSide(str, Enum):
    """Which score a factor contributes to."""

    BUY = "buy"
    SELL = "sell"
    GATE = "gate"  # Hard gate: contributes no score, overrides the decision


class Factor(BaseModel):
    """A named partial score (or gate) contributing to a signal."""

    model_config = ConfigDict(frozen=True)

    name: str
    side: FactorSide
    score: float = 0.0
    detail: str = ""


class CurveReading(BaseModel):
    """Bonding-curve shape facts supplied by an external collaborator."""

    model_config = ConfigDict(frozen=True)

    steepness: float
    liquidity_depth: float
    price_impact_pct: float = 0.0  # Estimated impact of the intended trade size


class MarketContext(BaseModel):
    """Auxiliary facts consumed alongside an indicator snapshot."""

    model_config = ConfigDict(frozen=True)

    buy_count: int = Field(default=0, ge=0)
    sell_count: int = Field(default=0, ge=0)
    age_seconds: float = 0.0  # Elapsed since the asset was first observed
    curve: CurveReading | None = None

    @property
    def buy_sell_ratio(self) -> float:
        return self.buy_count / max(self.sell_count, 1)

    @property
    def sell_buy_ratio(self) -> float:
        return self.sell_count / max(self.buy_count, 1)


class Signal(BaseModel):
    """Confidence-scored directional signal for one asset.

    ``candidate`` is the direction the scores point to before thresholds
    and gates are applied; ``direction`` is the actionable outcome.
    ``reasons`` lists why an otherwise-directional candidate was reported
    as HOLD (e.g. "below_buy_threshold", "age_out_of_window").
    """

    model_config = ConfigDict(frozen=True)

    asset_id: str
    direction: Direction
    candidate: Direction
    confidence: float = Field(ge=0, le=100)
    buy_score: float = Field(ge=0, le=100)
    sell_score: float = Field(ge=0, le=100)
    factors: tuple[Factor, ...] = ()
    reasons: tuple[str, ...] = ()

    @property
    def is_actionable(self) -> bool:
        return self.direction != Direction.HOLD

    @property
    def gates(self) -> list[Factor]:
        return [f for f in self.factors if f.side == FactorSide.GATE]

    def factor(self, name: str) -> Factor | None:
        """Get a contributing factor by name."""
        for f in self.factors:
            if f.name == name:
                return f
        return None

    def suppressed(self, reason: str) -> "Signal":
        """Return a HOLD copy of this signal with an extra suppression reason."""
        return self.model_copy(
            update={"direction": Direction.HOLD, "reasons": self.reasons + (reason,)}
        )
