"""Signal generator: reduces an indicator snapshot to a scored direction.

This module is pure business logic with no I/O dependencies. Given the
same IndicatorSnapshot and MarketContext it always returns the same Signal.

Scoring:
- Each factor adds a bounded amount to either the buy or the sell score
- Both totals are clamped to [0, 100]
- The larger total wins; ties resolve to HOLD
- Confidence is the winning total

Gates (never scored, reported as GATE factors):
- age_out_of_window: forces HOLD regardless of scores
- liquidity_insufficient (steepness or depth at or below its floor) /
  price_impact_too_high / curve_unavailable:
  suppress BUY only

A directional candidate that does not clear its confidence threshold is
reported as HOLD with the confidence retained.
"""

import logging

from pulse_core.indicators import IndicatorSnapshot
from pulse_core.models import (
    Direction,
    Factor,
    FactorSide,
    MarketContext,
    Signal,
    SignalConfig,
)

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0

# Gate names
GATE_AGE = "age_out_of_window"
GATE_LIQUIDITY = "liquidity_insufficient"
GATE_PRICE_IMPACT = "price_impact_too_high"
GATE_CURVE_MISSING = "curve_unavailable"

_BUY_GATES = frozenset({GATE_LIQUIDITY, GATE_PRICE_IMPACT, GATE_CURVE_MISSING})


def _clamp(value: float, low: float = 0.0, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def _crossed_above(
    prev_fast: float | None,
    prev_slow: float | None,
    fast: float | None,
    slow: float | None,
) -> bool | None:
    """True for a golden cross, False for a death cross, None for neither.

    Any unavailable value means no cross can be detected.
    """
    if None in (prev_fast, prev_slow, fast, slow):
        return None
    if prev_fast <= prev_slow and fast > slow:
        return True
    if prev_fast >= prev_slow and fast < slow:
        return False
    return None


class SignalGenerator:
    """Combine indicators and market facts into a confidence-scored Signal."""

    def __init__(self, config: SignalConfig | None = None):
        self.config = config or SignalConfig()

    # ------------------------------------------------------------------
    # Scored factors
    # ------------------------------------------------------------------

    def _momentum_factors(self, snap: IndicatorSnapshot) -> list[Factor]:
        half = self.config.momentum_weight / 2
        factors = []

        if snap.momentum > 0:
            factors.append(Factor(name="momentum", side=FactorSide.BUY, score=half,
                                  detail=f"momentum={snap.momentum:.6g}"))
        elif snap.momentum < 0:
            factors.append(Factor(name="momentum", side=FactorSide.SELL, score=half,
                                  detail=f"momentum={snap.momentum:.6g}"))

        prev_roc = snap.prev_rate_of_change
        roc = snap.rate_of_change
        if prev_roc is not None:
            if roc > 0 and roc > prev_roc:
                factors.append(Factor(name="rate_of_change", side=FactorSide.BUY, score=half,
                                      detail=f"roc={roc:.4f} prev={prev_roc:.4f}"))
            elif roc < 0 and roc < prev_roc:
                factors.append(Factor(name="rate_of_change", side=FactorSide.SELL, score=half,
                                      detail=f"roc={roc:.4f} prev={prev_roc:.4f}"))

        return factors

    def _ratio_factors(self, context: MarketContext) -> list[Factor]:
        cfg = self.config
        if context.buy_count + context.sell_count == 0:
            return []

        buy_ratio = context.buy_sell_ratio
        if buy_ratio > cfg.buy_ratio_threshold:
            score = min(cfg.ratio_weight_cap, (buy_ratio - cfg.buy_ratio_threshold) * cfg.ratio_scale)
            return [Factor(name="buy_sell_ratio", side=FactorSide.BUY, score=score,
                           detail=f"ratio={buy_ratio:.2f}")]

        sell_ratio = context.sell_buy_ratio
        if sell_ratio > cfg.buy_ratio_threshold:
            score = min(cfg.ratio_weight_cap, (sell_ratio - cfg.buy_ratio_threshold) * cfg.ratio_scale)
            return [Factor(name="buy_sell_ratio", side=FactorSide.SELL, score=score,
                           detail=f"ratio={sell_ratio:.2f}")]

        return []

    def _rsi_factors(self, snap: IndicatorSnapshot) -> list[Factor]:
        cfg = self.config
        if not snap.rsi_available:
            return []
        if snap.rsi < cfg.rsi_oversold:
            return [Factor(name="rsi", side=FactorSide.BUY, score=cfg.rsi_weight,
                           detail=f"rsi={snap.rsi:.2f} oversold")]
        if snap.rsi > cfg.rsi_overbought:
            return [Factor(name="rsi", side=FactorSide.SELL, score=cfg.rsi_weight,
                           detail=f"rsi={snap.rsi:.2f} overbought")]
        return []

    def _crossover_factors(self, snap: IndicatorSnapshot) -> list[Factor]:
        cfg = self.config
        fast, slow = cfg.crossover_fast, cfg.crossover_slow
        factors = []

        for label, current, previous, weight in (
            ("sma", snap.sma, snap.prev_sma, cfg.sma_cross_weight),
            ("ema", snap.ema, snap.prev_ema, cfg.ema_cross_weight),
        ):
            crossed = _crossed_above(
                previous.get(fast), previous.get(slow), current.get(fast), current.get(slow)
            )
            if crossed is True:
                factors.append(Factor(name=f"{label}_golden_cross", side=FactorSide.BUY,
                                      score=weight, detail=f"{label}{fast} > {label}{slow}"))
            elif crossed is False:
                factors.append(Factor(name=f"{label}_death_cross", side=FactorSide.SELL,
                                      score=weight, detail=f"{label}{fast} < {label}{slow}"))

        return factors

    def _bollinger_factors(self, snap: IndicatorSnapshot) -> list[Factor]:
        bands = snap.prev_bollinger
        if bands is None or snap.prev_price is None:
            return []
        weight = self.config.bollinger_rebound_weight

        if snap.prev_price <= bands.lower and snap.tick_up:
            return [Factor(name="bollinger_rebound", side=FactorSide.BUY, score=weight,
                           detail=f"rebound from lower={bands.lower:.6g}")]
        if snap.prev_price >= bands.upper and snap.tick_down:
            return [Factor(name="bollinger_rejection", side=FactorSide.SELL, score=weight,
                           detail=f"rejected at upper={bands.upper:.6g}")]
        return []

    def _macd_factors(self, snap: IndicatorSnapshot) -> list[Factor]:
        if not snap.macd_available:
            return []
        weight = self.config.macd_weight
        if snap.macd_histogram > 0:
            return [Factor(name="macd", side=FactorSide.BUY, score=weight,
                           detail=f"histogram={snap.macd_histogram:.6g}")]
        if snap.macd_histogram < 0:
            return [Factor(name="macd", side=FactorSide.SELL, score=weight,
                           detail=f"histogram={snap.macd_histogram:.6g}")]
        return []

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _gates(self, context: MarketContext) -> list[Factor]:
        cfg = self.config
        gates = []

        if not cfg.min_age_secs <= context.age_seconds <= cfg.max_age_secs:
            gates.append(Factor(
                name=GATE_AGE, side=FactorSide.GATE,
                detail=f"age={context.age_seconds:.0f}s window=[{cfg.min_age_secs:.0f}, {cfg.max_age_secs:.0f}]",
            ))

        curve = context.curve
        if curve is None:
            if cfg.require_curve:
                gates.append(Factor(name=GATE_CURVE_MISSING, side=FactorSide.GATE,
                                    detail="no bonding-curve reading"))
        else:
            if curve.steepness <= cfg.min_curve_steepness or curve.liquidity_depth <= cfg.min_liquidity_depth:
                gates.append(Factor(
                    name=GATE_LIQUIDITY, side=FactorSide.GATE,
                    detail=f"steepness={curve.steepness:.6g} depth={curve.liquidity_depth:.6g}",
                ))
            if curve.price_impact_pct > cfg.max_price_impact_pct:
                gates.append(Factor(
                    name=GATE_PRICE_IMPACT, side=FactorSide.GATE,
                    detail=f"impact={curve.price_impact_pct:.2f}% max={cfg.max_price_impact_pct:.2f}%",
                ))

        return gates

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score(self, snap: IndicatorSnapshot, context: MarketContext) -> list[Factor]:
        """Evaluate every scored factor (gates excluded), in a fixed order."""
        factors: list[Factor] = []
        factors.extend(self._momentum_factors(snap))
        factors.extend(self._ratio_factors(context))
        factors.extend(self._rsi_factors(snap))
        factors.extend(self._crossover_factors(snap))
        factors.extend(self._bollinger_factors(snap))
        factors.extend(self._macd_factors(snap))
        return [f.model_copy(update={"score": _clamp(f.score)}) for f in factors]

    def generate(
        self,
        asset_id: str,
        snap: IndicatorSnapshot,
        context: MarketContext,
    ) -> Signal:
        """
        Generate a signal for one asset.

        Args:
            asset_id: Asset identifier
            snap: Indicator snapshot computed from a copied price window
            context: Transaction counts, asset age and curve facts

        Returns:
            Signal with direction, confidence, factors and suppression reasons
        """
        cfg = self.config
        factors = self.score(snap, context)

        buy_score = _clamp(sum(f.score for f in factors if f.side == FactorSide.BUY))
        sell_score = _clamp(sum(f.score for f in factors if f.side == FactorSide.SELL))

        if buy_score > sell_score:
            candidate, confidence = Direction.BUY, buy_score
        elif sell_score > buy_score:
            candidate, confidence = Direction.SELL, sell_score
        else:
            candidate, confidence = Direction.HOLD, buy_score

        gates = self._gates(context)
        gate_names = {g.name for g in gates}
        factors.extend(gates)

        direction = candidate
        reasons: list[str] = []

        if GATE_AGE in gate_names:
            direction = Direction.HOLD
            reasons.append(GATE_AGE)
        elif candidate == Direction.BUY and gate_names & _BUY_GATES:
            direction = Direction.HOLD
            reasons.extend(sorted(gate_names & _BUY_GATES))
        elif candidate == Direction.BUY and confidence < cfg.min_buy_confidence:
            direction = Direction.HOLD
            reasons.append("below_buy_threshold")
        elif candidate == Direction.SELL and confidence < cfg.min_sell_confidence:
            direction = Direction.HOLD
            reasons.append("below_sell_threshold")

        signal = Signal(
            asset_id=asset_id,
            direction=direction,
            candidate=candidate,
            confidence=confidence,
            buy_score=buy_score,
            sell_score=sell_score,
            factors=tuple(factors),
            reasons=tuple(reasons),
        )

        if signal.is_actionable:
            logger.info(
                "%s %s: confidence=%.1f buy=%.1f sell=%.1f factors=%s",
                direction.value.upper(),
                asset_id,
                confidence,
                buy_score,
                sell_score,
                ",".join(f.name for f in factors if f.side != FactorSide.GATE),
            )
        elif candidate != Direction.HOLD:
            logger.debug(
                "%s candidate for %s held (confidence=%.1f): %s",
                candidate.value, asset_id, confidence, ",".join(reasons),
            )

        return signal
