"""Tests for the signal generator."""

from dataclasses import replace
from pathlib import Path

import pytest

from pulse_app.config import Settings
from pulse_app.engine_config import load_engine_config
from pulse_core.indicators import BollingerBands, IndicatorSnapshot
from pulse_core.models import (
    CurveReading,
    Direction,
    FactorSide,
    MarketContext,
    SignalConfig,
)
from pulse_core.signal_generator import (
    GATE_AGE,
    GATE_CURVE_MISSING,
    GATE_LIQUIDITY,
    GATE_PRICE_IMPACT,
    SignalGenerator,
)


def flat_averages(value=1.0):
    return {5: value, 10: value, 20: value, 50: value}


def make_snapshot(**overrides) -> IndicatorSnapshot:
    """A snapshot in which no factor fires."""
    bands = BollingerBands(mid=1.0, upper=1.1, lower=0.9)
    fields = dict(
        price=1.0,
        prev_price=1.0,
        sample_count=60,
        sma=flat_averages(),
        ema=flat_averages(),
        prev_sma=flat_averages(),
        prev_ema=flat_averages(),
        rsi=50.0,
        rsi_available=True,
        macd_line=0.0,
        macd_signal=0.0,
        macd_histogram=0.0,
        macd_available=True,
        bollinger=bands,
        prev_bollinger=bands,
        bollinger_available=True,
        momentum=0.0,
        rate_of_change=0.0,
        prev_rate_of_change=0.0,
    )
    fields.update(overrides)
    return IndicatorSnapshot(**fields)


def bullish_snapshot(**overrides) -> IndicatorSnapshot:
    """Momentum, RSI, golden crosses and MACD all pointing up (75 points)."""
    fields = dict(
        rsi=20.0,
        momentum=0.1,
        rate_of_change=5.0,
        prev_rate_of_change=2.0,
        macd_histogram=0.01,
        sma={5: 1.1, 10: 1.0, 20: 1.0, 50: 1.0},
        prev_sma={5: 0.9, 10: 1.0, 20: 1.0, 50: 1.0},
        ema={5: 1.1, 10: 1.0, 20: 1.0, 50: 1.0},
        prev_ema={5: 0.9, 10: 1.0, 20: 1.0, 50: 1.0},
    )
    fields.update(overrides)
    return make_snapshot(**fields)


def bearish_snapshot(**overrides) -> IndicatorSnapshot:
    """Mirror image of bullish_snapshot (75 points to sell)."""
    fields = dict(
        rsi=80.0,
        momentum=-0.1,
        rate_of_change=-5.0,
        prev_rate_of_change=-2.0,
        macd_histogram=-0.01,
        sma={5: 0.9, 10: 1.0, 20: 1.0, 50: 1.0},
        prev_sma={5: 1.1, 10: 1.0, 20: 1.0, 50: 1.0},
        ema={5: 0.9, 10: 1.0, 20: 1.0, 50: 1.0},
        prev_ema={5: 1.1, 10: 1.0, 20: 1.0, 50: 1.0},
    )
    fields.update(overrides)
    return make_snapshot(**fields)


BUY_FLOW = MarketContext(buy_count=40, sell_count=10, age_seconds=60)
SELL_FLOW = MarketContext(buy_count=10, sell_count=40, age_seconds=60)

ENGINE_YAML = Path(__file__).parent.parent / "engine.yaml"


class TestScoring:
    """Tests for individual factors."""

    @pytest.fixture
    def generator(self):
        return SignalGenerator()

    def test_neutral_is_hold(self, generator):
        """Test no firing factors gives HOLD with zero scores."""
        signal = generator.generate("ABC", make_snapshot(), MarketContext(age_seconds=60))

        assert signal.direction == Direction.HOLD
        assert signal.candidate == Direction.HOLD
        assert signal.buy_score == 0.0
        assert signal.sell_score == 0.0
        assert signal.reasons == ()

    def test_strong_buy(self, generator):
        """Test every bullish factor adds up to a BUY."""
        signal = generator.generate("ABC", bullish_snapshot(), BUY_FLOW)

        assert signal.direction == Direction.BUY
        # 20 rsi + 7.5 + 7.5 momentum + 15 + 15 crosses + 10 macd + 20 ratio
        assert signal.confidence == pytest.approx(95.0)
        assert signal.sell_score == 0.0
        names = {f.name for f in signal.factors}
        assert {"rsi", "momentum", "rate_of_change", "sma_golden_cross",
                "ema_golden_cross", "macd", "buy_sell_ratio"} <= names

    def test_strong_sell(self, generator):
        """Test every bearish factor adds up to a SELL."""
        signal = generator.generate("ABC", bearish_snapshot(), SELL_FLOW)

        assert signal.direction == Direction.SELL
        assert signal.confidence == pytest.approx(95.0)
        assert signal.factor("sma_death_cross").side == FactorSide.SELL
        assert signal.factor("buy_sell_ratio").side == FactorSide.SELL

    def test_ratio_score_capped(self, generator):
        """Test the buy/sell ratio score is capped."""
        context = MarketContext(buy_count=1000, sell_count=1, age_seconds=60)
        signal = generator.generate("ABC", make_snapshot(), context)

        assert signal.factor("buy_sell_ratio").score == 20.0

    def test_ratio_below_threshold(self, generator):
        """Test a ratio under the threshold adds nothing."""
        context = MarketContext(buy_count=12, sell_count=10, age_seconds=60)
        signal = generator.generate("ABC", make_snapshot(), context)

        assert signal.factor("buy_sell_ratio") is None

    def test_crossover_skips_unavailable_average(self, generator):
        """A missing slow average never produces a cross."""
        snap = bullish_snapshot(
            prev_sma={5: 0.9, 10: 1.0, 20: None, 50: None},
            prev_ema={5: 0.9, 10: 1.0, 20: None, 50: None},
        )
        signal = generator.generate("ABC", snap, BUY_FLOW)

        assert signal.factor("sma_golden_cross") is None
        assert signal.factor("ema_golden_cross") is None

    def test_bollinger_rebound(self, generator):
        """Test a bounce off the lower band scores BUY."""
        snap = make_snapshot(prev_price=0.85, price=1.0)
        signal = generator.generate("ABC", snap, MarketContext(age_seconds=60))

        factor = signal.factor("bollinger_rebound")
        assert factor.side == FactorSide.BUY
        assert factor.score == 15.0

    def test_bollinger_rejection(self, generator):
        """Test a rejection at the upper band scores SELL."""
        snap = make_snapshot(prev_price=1.15, price=1.0)
        signal = generator.generate("ABC", snap, MarketContext(age_seconds=60))

        assert signal.factor("bollinger_rejection").side == FactorSide.SELL

    def test_unavailable_indicators_ignored(self, generator):
        """Test indicators without enough history never fire."""
        snap = make_snapshot(rsi=10.0, rsi_available=False, macd_histogram=1.0, macd_available=False)
        signal = generator.generate("ABC", snap, MarketContext(age_seconds=60))

        assert signal.factor("rsi") is None
        assert signal.factor("macd") is None

    def test_factor_score_clamped(self):
        """Test factor scores and confidence are clamped to 100."""
        generator = SignalGenerator(SignalConfig(rsi_weight=150.0))
        signal = generator.generate("ABC", make_snapshot(rsi=10.0), MarketContext(age_seconds=60))

        assert signal.factor("rsi").score == 100.0
        assert signal.confidence == 100.0

    def test_tie_is_hold(self, generator):
        """Test equal buy and sell scores give HOLD."""
        snap = make_snapshot(momentum=0.1, rate_of_change=-1.0, prev_rate_of_change=0.0)
        signal = generator.generate("ABC", snap, MarketContext(age_seconds=60))

        assert signal.buy_score == signal.sell_score == 7.5
        assert signal.direction == Direction.HOLD
        assert signal.candidate == Direction.HOLD

    def test_deterministic(self, generator):
        """Identical inputs always give an identical signal."""
        snap = bullish_snapshot()
        first = generator.generate("ABC", snap, BUY_FLOW)
        second = generator.generate("ABC", replace(snap), BUY_FLOW.model_copy())

        assert first == second


class TestThresholdsAndGates:
    """Tests for thresholds and hard gates."""

    @pytest.fixture
    def generator(self):
        return SignalGenerator(SignalConfig(min_liquidity_depth=10.0))

    def test_below_buy_threshold(self, generator):
        """Test a weak BUY candidate is held."""
        signal = generator.generate("ABC", make_snapshot(rsi=20.0), MarketContext(age_seconds=60))

        assert signal.candidate == Direction.BUY
        assert signal.direction == Direction.HOLD
        assert signal.confidence == 20.0
        assert signal.reasons == ("below_buy_threshold",)

    def test_below_sell_threshold(self, generator):
        """Test a weak SELL candidate is held."""
        signal = generator.generate("ABC", make_snapshot(rsi=80.0), MarketContext(age_seconds=60))

        assert signal.direction == Direction.HOLD
        assert signal.reasons == ("below_sell_threshold",)

    def test_age_gate_forces_hold(self, generator):
        """Test an asset outside the age window is held."""
        context = BUY_FLOW.model_copy(update={"age_seconds": 7200})
        signal = generator.generate("ABC", bullish_snapshot(), context)

        assert signal.candidate == Direction.BUY
        assert signal.direction == Direction.HOLD
        assert signal.reasons == (GATE_AGE,)
        assert [g.name for g in signal.gates] == [GATE_AGE]
        assert signal.confidence == pytest.approx(95.0)

    def test_age_gate_blocks_sell(self, generator):
        """Test the age gate also holds a SELL."""
        context = SELL_FLOW.model_copy(update={"age_seconds": 7200})
        signal = generator.generate("ABC", bearish_snapshot(), context)

        assert signal.direction == Direction.HOLD

    def test_liquidity_gate(self, generator):
        """Test a shallow curve suppresses BUY."""
        curve = CurveReading(steepness=0.5, liquidity_depth=2.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})
        signal = generator.generate("ABC", bullish_snapshot(), context)

        assert signal.direction == Direction.HOLD
        assert signal.reasons == (GATE_LIQUIDITY,)
        assert signal.factor(GATE_LIQUIDITY).side == FactorSide.GATE

    def test_price_impact_and_liquidity_gates(self, generator):
        """Test both curve gates are reported in order."""
        curve = CurveReading(steepness=0.5, liquidity_depth=2.0, price_impact_pct=12.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})
        signal = generator.generate("ABC", bullish_snapshot(), context)

        assert signal.reasons == (GATE_LIQUIDITY, GATE_PRICE_IMPACT)

    def test_buy_gates_do_not_block_sell(self, generator):
        """Test curve gates leave SELL untouched."""
        curve = CurveReading(steepness=0.5, liquidity_depth=2.0, price_impact_pct=12.0)
        context = SELL_FLOW.model_copy(update={"curve": curve})
        signal = generator.generate("ABC", bearish_snapshot(), context)

        assert signal.direction == Direction.SELL
        assert len(signal.gates) == 2

    def test_deep_curve_passes(self, generator):
        """Test a deep curve with low impact lets BUY through."""
        curve = CurveReading(steepness=0.5, liquidity_depth=50.0, price_impact_pct=1.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})
        signal = generator.generate("ABC", bullish_snapshot(), context)

        assert signal.direction == Direction.BUY
        assert signal.gates == []

    def test_required_curve_missing(self):
        """Test a required but missing curve suppresses BUY."""
        generator = SignalGenerator(SignalConfig(require_curve=True))
        signal = generator.generate("ABC", bullish_snapshot(), BUY_FLOW)

        assert signal.direction == Direction.HOLD
        assert signal.reasons == (GATE_CURVE_MISSING,)

    def test_depth_at_floor_is_gated(self, generator):
        """Test a depth exactly at the floor suppresses BUY."""
        curve = CurveReading(steepness=0.5, liquidity_depth=10.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})
        signal = generator.generate("ABC", bullish_snapshot(), context)

        assert signal.direction == Direction.HOLD
        assert signal.reasons == (GATE_LIQUIDITY,)

    def test_empty_curve_gated_by_default(self):
        """Test a curve with no depth or steepness suppresses BUY under default floors."""
        curve = CurveReading(steepness=0.0, liquidity_depth=0.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})
        signal = SignalGenerator().generate("ABC", bullish_snapshot(), context)

        assert signal.candidate == Direction.BUY
        assert signal.direction == Direction.HOLD
        assert signal.reasons == (GATE_LIQUIDITY,)

    def test_empty_curve_gated_with_shipped_config(self):
        """Test the bundled engine.yaml still gates an empty curve."""
        config = load_engine_config(ENGINE_YAML, settings=Settings(_env_file=None))
        curve = CurveReading(steepness=0.0, liquidity_depth=0.0)
        context = BUY_FLOW.model_copy(update={"curve": curve})

        signal = SignalGenerator(config.signal).generate("ABC", bullish_snapshot(), context)

        assert signal.direction != Direction.BUY
        assert GATE_LIQUIDITY in signal.reasons
