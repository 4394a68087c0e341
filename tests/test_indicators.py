"""Tests for technical indicators."""

import random

import pytest

from pulse_core.indicators import (
    MA_PERIODS,
    IndicatorCalculator,
    bollinger,
    ema,
    ema_series,
    macd,
    momentum,
    rate_of_change,
    rsi,
    sma,
)


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        """Prices 1..5 over period 5 average to 3."""
        assert sma([1, 2, 3, 4, 5], 5) == 3.0

    def test_sma_uses_latest_window(self):
        """Only the most recent period prices are averaged."""
        assert sma([100, 1, 2, 3, 4, 5], 5) == 3.0

    @pytest.mark.parametrize("value", [0.1, 1e-9, 3.3333333, 42000.17])
    def test_sma_constant_is_exact(self, value):
        """Identical values average to exactly that value."""
        assert sma([value] * 20, 20) == value

    def test_sma_insufficient_data(self):
        """Fewer prices than the period fall back to 0.0."""
        assert sma([1.0, 2.0], 5) == 0.0

    def test_sma_invalid_period(self):
        """Non-positive periods are rejected."""
        with pytest.raises(ValueError):
            sma([1.0, 2.0], 0)


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeded_with_sma(self):
        """First EMA value is the SMA of the first period prices."""
        series = ema_series([1, 2, 3, 4, 5], 5)
        assert len(series) == 1
        assert series[0] == pytest.approx(3.0)

    def test_ema_basic(self):
        """Linear prices: each step moves the EMA by one."""
        values = list(range(1, 11))
        series = ema_series(values, 5)

        assert len(series) == 6
        assert list(series) == pytest.approx([3, 4, 5, 6, 7, 8])
        assert ema(values, 5) == pytest.approx(8.0)

    def test_ema_insufficient_data(self):
        """Short history gives 0.0 and an empty series."""
        assert ema([100.0, 101.0], 10) == 0.0
        assert len(ema_series([100.0, 101.0], 10)) == 0

    def test_ema_reacts_faster_than_sma(self):
        """A jump moves the EMA further than the SMA."""
        values = [10.0] * 20 + [20.0]
        assert ema(values, 10) > sma(values, 10)


class TestRSI:
    """Tests for RSI calculation."""

    def test_rsi_strict_uptrend(self):
        """Constant increases with no losses give RSI 100."""
        # The "14 rising closes give RSI 100" case: period 14 needs 14
        # changes, i.e. period + 1 = 15 closes. 14 closes alone give the
        # neutral 50, see test_rsi_insufficient_data_is_neutral.
        closes = [100.0 + 2.5 * i for i in range(15)]
        assert rsi(closes, 14) == 100.0

    def test_rsi_strict_downtrend(self):
        """Constant decreases with no gains give RSI 0."""
        closes = [100.0 - 2.5 * i for i in range(15)]
        assert rsi(closes, 14) == 0.0

    def test_rsi_insufficient_data_is_neutral(self):
        """Fewer than period + 1 closes give the neutral 50."""
        assert rsi([1.0, 2.0, 3.0], 14) == 50.0
        assert rsi([100.0 + i for i in range(14)], 14) == 50.0

    def test_rsi_balanced(self):
        """Equal gains and losses give 50."""
        closes = [10.0, 11.0] * 8
        assert rsi(closes, 14) == pytest.approx(50.0)

    def test_rsi_range(self):
        """RSI stays within [0, 100] for arbitrary valid prices."""
        rng = random.Random(7)
        for _ in range(200):
            n = rng.randint(1, 60)
            prices = [rng.uniform(1e-6, 1e6) for _ in range(n)]
            value = rsi(prices, 14)
            assert 0.0 <= value <= 100.0


class TestMACD:
    """Tests for MACD calculation."""

    def test_macd_insufficient_data(self):
        """Fewer than slow prices give all zeros."""
        result = macd([1.0] * 10)
        assert (result.line, result.signal, result.histogram) == (0.0, 0.0, 0.0)

    def test_macd_uptrend_positive_line(self):
        """Rising prices give a positive MACD line."""
        prices = [100.0 * 1.01 ** i for i in range(60)]
        result = macd(prices)

        assert result.line > 0
        assert result.histogram == pytest.approx(result.line - result.signal)

    def test_macd_downtrend_negative_line(self):
        """Falling prices give a negative MACD line."""
        prices = [100.0 * 0.99 ** i for i in range(60)]
        assert macd(prices).line < 0

    def test_macd_flat_is_zero(self):
        """Flat prices give a zero line and histogram."""
        result = macd([5.0] * 60)
        assert result.line == pytest.approx(0.0)
        assert result.histogram == pytest.approx(0.0)

    def test_macd_fast_must_be_shorter(self):
        """Fast period must be shorter than slow period."""
        with pytest.raises(ValueError):
            macd([1.0] * 40, fast=26, slow=12)


class TestBollinger:
    """Tests for Bollinger Bands."""

    def test_bollinger_basic(self):
        """Bands use the population standard deviation."""
        prices = [float(i) for i in range(1, 21)]
        bands = bollinger(prices, 20, 2.0)

        assert bands.mid == pytest.approx(10.5)
        # Population stddev of 1..20 = sqrt((20^2 - 1) / 12)
        stddev = ((20 ** 2 - 1) / 12) ** 0.5
        assert bands.upper == pytest.approx(10.5 + 2 * stddev)
        assert bands.lower == pytest.approx(10.5 - 2 * stddev)

    def test_bollinger_constant_collapses(self):
        """Constant prices collapse all bands to the price."""
        bands = bollinger([3.0] * 20)
        assert bands.lower == bands.mid == bands.upper == 3.0
        assert bands.bandwidth == 0.0

    def test_bollinger_insufficient_uses_last_price(self):
        """Short history collapses all bands to the last price."""
        bands = bollinger([1.0, 2.0, 4.0], 20)
        assert bands.lower == bands.mid == bands.upper == 4.0

    def test_bollinger_empty(self):
        """No prices give zero bands."""
        bands = bollinger([], 20)
        assert bands.mid == 0.0

    def test_bollinger_ordering(self):
        """lower <= mid <= upper for arbitrary inputs."""
        rng = random.Random(11)
        for _ in range(200):
            prices = [rng.uniform(0.001, 1000.0) for _ in range(rng.randint(1, 50))]
            bands = bollinger(prices, 20, 2.0)
            assert bands.lower <= bands.mid <= bands.upper

    def test_bollinger_negative_k(self):
        """Negative band multiplier is rejected."""
        with pytest.raises(ValueError):
            bollinger([1.0] * 20, 20, -1.0)


class TestMomentum:
    """Tests for momentum and rate of change."""

    def test_momentum(self):
        """Momentum is the absolute change over the period."""
        prices = [float(i) for i in range(1, 12)]  # 1..11
        assert momentum(prices, 10) == 10.0

    def test_rate_of_change(self):
        """Rate of change is the percent change over the period."""
        prices = [100.0] + [105.0] * 9 + [110.0]
        assert rate_of_change(prices, 10) == pytest.approx(10.0)

    def test_insufficient_data(self):
        """Short history gives 0.0 for both."""
        assert momentum([1.0, 2.0], 10) == 0.0
        assert rate_of_change([1.0, 2.0], 10) == 0.0


class TestIndicatorCalculator:
    """Tests for IndicatorCalculator."""

    @pytest.fixture
    def calculator(self):
        return IndicatorCalculator()

    def test_snapshot_requires_prices(self, calculator):
        """An empty window is rejected."""
        with pytest.raises(ValueError):
            calculator.snapshot([])

    def test_snapshot_marks_unavailable_averages(self, calculator):
        """Periods longer than the history are None, never 0.0."""
        snap = calculator.snapshot([float(i) for i in range(1, 11)])

        assert snap.sma[5] == 8.0
        assert snap.sma[10] == 5.5
        assert snap.sma[20] is None
        assert snap.ema[50] is None
        assert set(snap.sma) == set(MA_PERIODS)

    def test_snapshot_previous_values(self, calculator):
        """Previous values are computed without the latest price."""
        snap = calculator.snapshot([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

        assert snap.price == 6.0
        assert snap.prev_price == 5.0
        assert snap.sma[5] == 4.0
        assert snap.prev_sma[5] == 3.0
        assert snap.tick_up is True

    def test_snapshot_single_price(self, calculator):
        """A single price has no previous values."""
        snap = calculator.snapshot([2.0])

        assert snap.prev_price is None
        assert all(v is None for v in snap.prev_sma.values())
        assert snap.tick_up is False
        assert snap.tick_down is False

    def test_snapshot_availability_flags(self, calculator):
        """Availability flags follow the history length."""
        short = calculator.snapshot([1.0] * 14)
        assert short.rsi_available is False
        assert short.macd_available is False
        assert short.bollinger_available is False
        assert short.prev_bollinger is None

        long = calculator.snapshot([1.0 + 0.01 * i for i in range(40)])
        assert long.rsi_available is True
        assert long.macd_available is True
        assert long.bollinger_available is True
        assert long.prev_bollinger is not None
        assert long.prev_rate_of_change is not None

    def test_snapshot_is_deterministic(self, calculator):
        """Identical windows give identical snapshots."""
        prices = [1.0 + 0.1 * ((i * 7) % 5) for i in range(30)]
        assert calculator.snapshot(prices) == calculator.snapshot(list(prices))
