"""Position sizing and exit parameter calculation.

Sizing:
- Base size scales linearly with confidence (0-100) up to max_position_size
- Divided by (1 + volatility_sensitivity * bandwidth), where bandwidth is the
  Bollinger band width relative to the mid band
- Capped by max_portfolio_risk_fraction of the portfolio value, if known
- Finally clamped to the remaining daily budget by DailyBudgetCounter

Exits:
- risk_score = min(1, bandwidth / volatility_reference)
- Stop-loss, take-profit tiers and trailing stop are the configured
  baselines scaled down by (1 - tightening * risk_score)
- Stop distance is further scaled by the time checkpoints while held
"""

import logging

from pulse_core.budget import DailyBudgetCounter
from pulse_core.indicators import IndicatorSnapshot
from pulse_core.models import (
    Allocation,
    RiskConfig,
    RiskParameters,
    TakeProfitTier,
)

logger = logging.getLogger(__name__)


class RiskCalculator:
    """Convert confidence and volatility into sized, exit-scheduled allocations."""

    def __init__(self, config: RiskConfig | None = None):
        self.config = config or RiskConfig()

    @staticmethod
    def volatility(snap: IndicatorSnapshot) -> float:
        """Bollinger bandwidth (0.0 until the bands have enough history)."""
        if not snap.bollinger_available:
            return 0.0
        return max(0.0, snap.bollinger.bandwidth)

    def risk_score(self, snap: IndicatorSnapshot) -> float:
        """Volatility-derived risk score in [0, 1]."""
        return min(1.0, self.volatility(snap) / self.config.volatility_reference)

    def proposed_size(
        self,
        confidence: float,
        snap: IndicatorSnapshot,
        portfolio_value: float | None = None,
    ) -> float:
        """
        Size before the daily budget is applied.

        Monotonic non-decreasing in confidence and non-increasing in volatility.
        """
        cfg = self.config
        confidence = max(0.0, min(100.0, confidence))
        size = cfg.max_position_size * confidence / 100
        size /= 1 + cfg.volatility_sensitivity * self.volatility(snap)
        if portfolio_value is not None:
            size = min(size, max(0.0, portfolio_value) * cfg.max_portfolio_risk_fraction)
        return max(0.0, size)

    def exit_parameters(
        self,
        snap: IndicatorSnapshot,
        position_size: float,
        budget_remaining: float = 0.0,
    ) -> RiskParameters:
        """Build the exit schedule for a position of ``position_size``."""
        cfg = self.config
        volatility = self.volatility(snap)
        risk = self.risk_score(snap)

        stop_scale = 1 - cfg.stop_tightening * risk
        tp_scale = 1 - cfg.take_profit_tightening * risk
        base_tp = cfg.take_profit_percent * tp_scale

        tiers = tuple(
            TakeProfitTier(pct=base_tp * tier.multiplier, fraction=tier.fraction)
            for tier in cfg.take_profit_tiers
        )

        return RiskParameters(
            position_size=position_size,
            stop_loss_pct=cfg.stop_loss_percent * stop_scale,
            take_profit_tiers=tiers,
            trailing_stop_pct=cfg.trailing_stop_percent * stop_scale,
            stop_checkpoints=tuple(cfg.stop_checkpoints),
            daily_budget_remaining=budget_remaining,
            risk_score=risk,
            volatility=volatility,
        )

    async def allocate(
        self,
        confidence: float,
        snap: IndicatorSnapshot,
        budget: DailyBudgetCounter,
        portfolio_value: float | None = None,
    ) -> tuple[Allocation, RiskParameters | None]:
        """
        Size a buy and reserve it from the daily budget in one step.

        Returns:
            (allocation, parameters). Parameters are None when nothing was
            granted (budget exhausted or zero size); the buy must not proceed.
        """
        requested = self.proposed_size(confidence, snap, portfolio_value)
        allocation = await budget.reserve(requested)

        if not allocation.accepted:
            logger.info(
                "Allocation blocked (%s): requested=%.4f remaining=%.4f",
                allocation.status.value, requested, allocation.remaining,
            )
            return allocation, None

        params = self.exit_parameters(snap, allocation.granted, allocation.remaining)
        logger.debug(
            "Allocated %.4f (%s) sl=%.2f%% trail=%.2f%% risk=%.2f",
            allocation.granted,
            allocation.status.value,
            params.stop_loss_pct,
            params.trailing_stop_pct,
            params.risk_score,
        )
        return allocation, params

    @staticmethod
    def effective_stop_pct(params: RiskParameters, held_seconds: float) -> float:
        """Stop distance after time-based tightening (non-increasing in time)."""
        return params.stop_distance_pct(held_seconds)
