"""Evaluation engine: turns recorded history into decisions.

For each evaluation of an asset:
1. Copy the asset's series from the store (the only locked step)
2. Compute the indicator snapshot and market context on the copy
3. Generate a signal
4. Feed the latest price to the open position (exits)
5. SELL: close the open position
   BUY: claim entry, size and reserve from the daily budget, open position
6. Notify decision callbacks (the execution collaborator)

Buys that cannot proceed (budget exhausted, position already open,
cooldown) are reported as HOLD with the reason appended to the signal.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from pulse_app.clients.protocol import CurveProvider
from pulse_app.engine_config import EngineConfig
from pulse_app.services.position_tracker import PositionTracker
from pulse_app.storage import SeriesStore
from pulse_core.budget import DailyBudgetCounter
from pulse_core.indicators import IndicatorCalculator, IndicatorSnapshot
from pulse_core.models import (
    Allocation,
    AllocationStatus,
    Direction,
    ExitEvent,
    ExitReason,
    MarketContext,
    Observation,
    RiskParameters,
    Signal,
)
from pulse_core.risk_calculator import RiskCalculator
from pulse_core.signal_generator import SignalGenerator

logger = logging.getLogger(__name__)

REASON_BUDGET_EXHAUSTED = "budget_exhausted"
REASON_ZERO_ALLOCATION = "zero_allocation"


@dataclass
class Decision:
    """Result of one evaluation, handed to the execution collaborator."""

    signal: Signal
    price: float
    allocation: Allocation | None = None
    risk: RiskParameters | None = None
    exits: list[ExitEvent] = field(default_factory=list)

    @property
    def asset_id(self) -> str:
        return self.signal.asset_id

    @property
    def entered(self) -> bool:
        return self.risk is not None


# Type alias for decision callback
DecisionCallback = Callable[[Decision], Awaitable[None]]


class SignalEngine:
    """Wires the store, indicator engine, signal generator and risk calculator."""

    def __init__(
        self,
        store: SeriesStore,
        budget: DailyBudgetCounter,
        tracker: PositionTracker,
        calculator: IndicatorCalculator | None = None,
        generator: SignalGenerator | None = None,
        risk: RiskCalculator | None = None,
        curve_provider: CurveProvider | None = None,
        portfolio_value: float | None = None,
        min_history: int = 2,
    ):
        self.store = store
        self.budget = budget
        self.tracker = tracker
        self.calculator = calculator or IndicatorCalculator()
        self.generator = generator or SignalGenerator()
        self.risk = risk or RiskCalculator()
        self.curve_provider = curve_provider
        self.portfolio_value = portfolio_value
        self.min_history = min_history

        self._callbacks: list[DecisionCallback] = []

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        store: SeriesStore,
        curve_provider: CurveProvider | None = None,
        portfolio_value: float | None = None,
    ) -> "SignalEngine":
        """Build an engine (budget and tracker included) from EngineConfig."""
        tracker = PositionTracker(
            store=store,
            cooldown_secs=config.risk.cooldown_secs,
            evict_on_close=config.risk.evict_on_close,
        )
        return cls(
            store=store,
            budget=DailyBudgetCounter(config.daily_buy_budget),
            tracker=tracker,
            generator=SignalGenerator(config.signal),
            risk=RiskCalculator(config.risk),
            curve_provider=curve_provider,
            portfolio_value=portfolio_value,
        )

    def on_decision(self, callback: DecisionCallback) -> None:
        """Register callback for decisions.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_decision(self, callback: DecisionCallback) -> None:
        """Unregister callback for decisions."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def handle_observation(self, observation: Observation) -> None:
        """Collector callback: evaluate the asset that just recorded."""
        await self.evaluate(observation.asset_id)

    async def _market_context(self, asset_id: str, latest: Observation) -> MarketContext:
        first_seen = self.store.first_seen(asset_id)
        age = (latest.observed_at - first_seen).total_seconds() if first_seen else 0.0

        curve = None
        if self.curve_provider is not None:
            try:
                curve = await self.curve_provider.get_curve(asset_id, self.risk.config.max_position_size)
            except Exception as e:
                logger.warning("Curve reading failed for %s: %s", asset_id, e)

        return MarketContext(
            buy_count=latest.buy_count,
            sell_count=latest.sell_count,
            age_seconds=max(0.0, age),
            curve=curve,
        )

    async def evaluate(self, asset_id: str) -> Decision | None:
        """
        Evaluate one asset.

        Returns:
            Decision, or None if the asset has too little history
        """
        history = await self.store.snapshot(asset_id)
        if len(history) < self.min_history:
            return None

        latest = history[-1]
        snap = self.calculator.snapshot([o.price for o in history])
        context = await self._market_context(asset_id, latest)
        signal = self.generator.generate(asset_id, snap, context)

        decision = Decision(signal=signal, price=latest.price)
        decision.exits.extend(await self.tracker.process_price(asset_id, latest.price))

        if signal.direction == Direction.SELL:
            event = await self.tracker.close(asset_id, ExitReason.SELL_SIGNAL, latest.price)
            if event is not None:
                decision.exits.append(event)
        elif signal.direction == Direction.BUY:
            await self._enter(decision, snap)

        for callback in self._callbacks:
            try:
                await callback(decision)
            except Exception as e:
                logger.error("Decision callback error for %s: %s", asset_id, e)

        return decision

    async def _enter(self, decision: Decision, snap: IndicatorSnapshot) -> None:
        """Size, reserve budget for and open a position for a BUY signal."""
        signal = decision.signal
        asset_id = signal.asset_id

        blocked = await self.tracker.claim_entry(asset_id)
        if blocked is not None:
            decision.signal = signal.suppressed(blocked)
            return

        try:
            allocation, params = await self.risk.allocate(
                signal.confidence, snap, self.budget, self.portfolio_value
            )
            decision.allocation = allocation

            if params is None:
                reason = (
                    REASON_BUDGET_EXHAUSTED
                    if allocation.status == AllocationStatus.EXHAUSTED
                    else REASON_ZERO_ALLOCATION
                )
                decision.signal = signal.suppressed(reason)
                logger.info("BUY %s suppressed: %s", asset_id, allocation.status.value)
                return

            position = await self.tracker.open(asset_id, decision.price, params)
            if position is not None:
                decision.risk = params
        finally:
            await self.tracker.release_entry(asset_id)
