"""Signal and risk configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from pulse_core.indicators import MA_PERIODS


class SignalConfig(BaseModel):
    """Weights, thresholds and gates for the signal generator."""

    # Actionability thresholds (confidence, 0-100)
    min_buy_confidence: float = 65.0
    min_sell_confidence: float = 70.0

    # Momentum: half the weight for positive momentum, half for rising ROC
    momentum_weight: float = Field(default=15.0, ge=0)

    # Buy/sell transaction ratio
    buy_ratio_threshold: float = Field(default=1.5, gt=0)
    ratio_scale: float = Field(default=20.0, ge=0)  # Score per unit of excess ratio
    ratio_weight_cap: float = Field(default=20.0, ge=0)

    # RSI
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    rsi_weight: float = Field(default=20.0, ge=0)

    # Moving average crossovers (periods must be snapshot periods)
    crossover_fast: int = 5
    crossover_slow: int = 20
    sma_cross_weight: float = Field(default=15.0, ge=0)
    ema_cross_weight: float = Field(default=15.0, ge=0)

    # Bollinger band rebound / rejection
    bollinger_rebound_weight: float = Field(default=15.0, ge=0)

    # MACD histogram sign
    macd_weight: float = Field(default=10.0, ge=0)

    # Hard gates
    min_age_secs: float = Field(default=0.0, ge=0)
    max_age_secs: float = Field(default=3600.0, ge=0)
    min_curve_steepness: float = Field(default=0.0, ge=0)
    min_liquidity_depth: float = Field(default=0.0, ge=0)
    max_price_impact_pct: float = Field(default=5.0, ge=0)
    require_curve: bool = False

    @model_validator(mode="after")
    def _validate(self):
        for name in ("min_buy_confidence", "min_sell_confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within [0, 100], got {value}")
        if not 0 <= self.rsi_oversold < self.rsi_overbought <= 100:
            raise ValueError(
                "rsi bounds must satisfy 0 <= rsi_oversold < rsi_overbought <= 100"
            )
        if self.min_age_secs > self.max_age_secs:
            raise ValueError("min_age_secs must not exceed max_age_secs")
        if self.crossover_fast >= self.crossover_slow:
            raise ValueError("crossover_fast must be shorter than crossover_slow")
        for period in (self.crossover_fast, self.crossover_slow):
            if period not in MA_PERIODS:
                raise ValueError(f"crossover period {period} must be one of {MA_PERIODS}")
        return self


class TakeProfitTierConfig(BaseModel):
    """One take-profit tier: exit ``fraction`` of the remaining position at
    ``multiplier`` times the base take-profit percentage."""

    multiplier: float = Field(gt=0)
    fraction: float = Field(gt=0, le=1)


class StopCheckpoint(BaseModel):
    """After ``after_secs`` of holding, scale the stop distance by ``factor``."""

    after_secs: float = Field(ge=0)
    factor: float = Field(gt=0, le=1)


def _default_tiers() -> list[TakeProfitTierConfig]:
    return [
        TakeProfitTierConfig(multiplier=1.0, fraction=0.5),
        TakeProfitTierConfig(multiplier=2.0, fraction=0.5),
        TakeProfitTierConfig(multiplier=3.0, fraction=1.0),
    ]


def _default_checkpoints() -> list[StopCheckpoint]:
    return [
        StopCheckpoint(after_secs=300, factor=0.75),
        StopCheckpoint(after_secs=900, factor=0.5),
        StopCheckpoint(after_secs=1800, factor=0.25),
    ]


class RiskConfig(BaseModel):
    """Position sizing and exit parameter configuration."""

    # Sizing (budget units)
    max_position_size: float = Field(default=1.0, gt=0)
    max_portfolio_risk_fraction: float = Field(default=0.1, gt=0, le=1)
    volatility_sensitivity: float = Field(default=2.0, ge=0)

    # Bollinger bandwidth at which the risk score saturates at 1.0
    volatility_reference: float = Field(default=0.5, gt=0)

    # Baseline exits (percent of entry price)
    stop_loss_percent: float = Field(default=10.0, gt=0, lt=100)
    take_profit_percent: float = Field(default=20.0, gt=0)
    trailing_stop_percent: float = Field(default=8.0, gt=0, lt=100)

    # Fraction of the baseline removed at risk score 1.0
    stop_tightening: float = Field(default=0.5, ge=0, lt=1)
    take_profit_tightening: float = Field(default=0.25, ge=0, lt=1)

    take_profit_tiers: list[TakeProfitTierConfig] = Field(default_factory=_default_tiers)
    stop_checkpoints: list[StopCheckpoint] = Field(default_factory=_default_checkpoints)

    # Position lifecycle
    cooldown_secs: float = Field(default=300.0, ge=0)
    evict_on_close: bool = True

    @model_validator(mode="after")
    def _validate(self):
        if not self.take_profit_tiers:
            raise ValueError("at least one take-profit tier is required")
        multipliers = [t.multiplier for t in self.take_profit_tiers]
        if any(b <= a for a, b in zip(multipliers, multipliers[1:])):
            raise ValueError("take-profit tier multipliers must be strictly increasing")
        after = [c.after_secs for c in self.stop_checkpoints]
        if after != sorted(after):
            raise ValueError("stop checkpoints must be ordered by after_secs")
        return self
