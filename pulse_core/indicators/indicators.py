"""Technical indicators over a rolling price window (pure math, no I/O).

Prices are ordered oldest first, most recent last. Short history is the
normal state right after an asset is first observed, so every function
returns a defined fallback instead of raising:

- SMA / EMA / momentum / rate of change: 0.0
- RSI: 50.0 (neutral)
- MACD: all components 0.0
- Bollinger Bands: all three bands collapse to the last price (0.0 if empty)

IndicatorCalculator.snapshot() additionally reports which averages were
computed from enough history, so callers never have to compare against a
fallback zero.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Moving average periods included in every snapshot
MA_PERIODS: tuple[int, ...] = (5, 10, 20, 50)


def _as_array(prices: Sequence[float]) -> np.ndarray:
    return np.asarray(prices, dtype=np.float64)


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


def _mean(arr: np.ndarray) -> float:
    # Shifted mean: a window of identical values returns that value exactly.
    base = arr[0]
    return float(base + np.mean(arr - base))


# =============================================================================
# Moving averages
# =============================================================================

def sma(prices: Sequence[float], period: int) -> float:
    """
    Simple Moving Average of the last ``period`` prices.

    Args:
        prices: Price history, most recent last
        period: Window length

    Returns:
        The average, or 0.0 if fewer than ``period`` prices exist
    """
    _check_period(period)
    if len(prices) < period:
        return 0.0
    return _mean(_as_array(prices[-period:]))


def ema_series(prices: Sequence[float], period: int) -> np.ndarray:
    """
    Full Exponential Moving Average series.

    Seeded with the SMA of the earliest ``period`` prices, then updated with
    smoothing factor ``2 / (period + 1)`` across the remaining prices.

    Returns:
        Array of ``len(prices) - period + 1`` values (element ``i`` belongs to
        price index ``period - 1 + i``), or an empty array if insufficient
    """
    _check_period(period)
    arr = _as_array(prices)
    if len(arr) < period:
        return np.empty(0, dtype=np.float64)

    alpha = 2.0 / (period + 1)
    result = np.empty(len(arr) - period + 1, dtype=np.float64)
    result[0] = _mean(arr[:period])

    for i in range(1, len(result)):
        result[i] = arr[period - 1 + i] * alpha + result[i - 1] * (1 - alpha)

    return result


def ema(prices: Sequence[float], period: int) -> float:
    """
    Exponential Moving Average at the most recent price.

    Returns:
        Latest EMA value, or 0.0 if fewer than ``period`` prices exist
    """
    series = ema_series(prices, period)
    if len(series) == 0:
        return 0.0
    return float(series[-1])


# =============================================================================
# Oscillators
# =============================================================================

def rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Relative Strength Index over the most recent ``period`` price changes.

    gains  = sum of positive changes
    losses = sum of magnitudes of negative changes
    RSI    = 100 - 100 / (1 + gains / losses), or 100.0 when losses == 0

    Returns:
        Value in [0, 100]; 50.0 if fewer than ``period + 1`` prices exist
    """
    _check_period(period)
    if len(prices) < period + 1:
        return 50.0

    deltas = np.diff(_as_array(prices[-(period + 1):]))
    gains = float(deltas[deltas > 0].sum())
    losses = float(-deltas[deltas < 0].sum())

    if losses == 0:
        return 100.0

    value = 100.0 - 100.0 / (1.0 + gains / losses)
    return min(100.0, max(0.0, value))


@dataclass(slots=True, frozen=True)
class MACD:
    """MACD line, signal line and histogram at the latest price."""

    line: float
    signal: float
    histogram: float


def macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACD:
    """
    Moving Average Convergence Divergence.

    line      = EMA(fast) - EMA(slow)
    signal    = EMA(signal) of the MACD line series
    histogram = line - signal

    Returns all zeros if fewer than ``slow`` prices exist. The signal line
    follows the EMA fallback (0.0) while fewer than ``signal`` MACD values
    exist.
    """
    _check_period(signal)
    if fast >= slow:
        raise ValueError(f"fast period ({fast}) must be shorter than slow period ({slow})")
    if len(prices) < slow:
        return MACD(0.0, 0.0, 0.0)

    fast_values = ema_series(prices, fast)
    slow_values = ema_series(prices, slow)
    # Align both series on price index: fast_values has (slow - fast) extra leading values
    line_values = fast_values[slow - fast:] - slow_values

    line = float(line_values[-1])
    signal_value = ema(line_values, signal)
    return MACD(line, signal_value, line - signal_value)


# =============================================================================
# Volatility
# =============================================================================

@dataclass(slots=True, frozen=True)
class BollingerBands:
    """Bollinger Bands at the latest price."""

    mid: float
    upper: float
    lower: float

    @property
    def width(self) -> float:
        return self.upper - self.lower

    @property
    def bandwidth(self) -> float:
        """Band width relative to the mid band (0.0 when mid is not positive)."""
        if self.mid <= 0:
            return 0.0
        return self.width / self.mid


def bollinger(
    prices: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> BollingerBands:
    """
    Bollinger Bands using the population standard deviation.

    mid   = SMA(period)
    upper = mid + k * stddev
    lower = mid - k * stddev

    If fewer than ``period`` prices exist, all three bands collapse to the
    last known price (0.0 when there is no price at all).
    """
    _check_period(period)
    if k < 0:
        raise ValueError(f"k must be >= 0, got {k}")
    if len(prices) == 0:
        return BollingerBands(0.0, 0.0, 0.0)
    if len(prices) < period:
        last = float(prices[-1])
        return BollingerBands(last, last, last)

    window = _as_array(prices[-period:])
    mid = _mean(window)
    stddev = float(np.sqrt(np.mean((window - mid) ** 2)))
    return BollingerBands(mid, mid + k * stddev, mid - k * stddev)


# =============================================================================
# Momentum
# =============================================================================

def momentum(prices: Sequence[float], period: int = 10) -> float:
    """
    Absolute price change over ``period`` steps: price[t] - price[t - period].

    Returns:
        0.0 if fewer than ``period + 1`` prices exist
    """
    _check_period(period)
    if len(prices) < period + 1:
        return 0.0
    return float(prices[-1]) - float(prices[-1 - period])


def rate_of_change(prices: Sequence[float], period: int = 10) -> float:
    """
    Percent price change over ``period`` steps.

    ROC = (price[t] - price[t - period]) / price[t - period] * 100

    Returns:
        0.0 if fewer than ``period + 1`` prices exist or the base price is zero
    """
    _check_period(period)
    if len(prices) < period + 1:
        return 0.0
    base = float(prices[-1 - period])
    if base == 0:
        return 0.0
    return (float(prices[-1]) - base) / base * 100.0


# =============================================================================
# IndicatorCalculator class
# =============================================================================

@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    """All indicator values for one evaluation of one asset.

    ``sma``/``ema`` map each period to its value, or to None when the window
    holds fewer prices than the period. ``prev_*`` fields hold the same
    values computed without the latest price; they are None when there is
    no previous tick.
    """

    price: float
    prev_price: float | None
    sample_count: int
    sma: dict[int, float | None]
    ema: dict[int, float | None]
    prev_sma: dict[int, float | None]
    prev_ema: dict[int, float | None]
    rsi: float
    rsi_available: bool
    macd_line: float
    macd_signal: float
    macd_histogram: float
    macd_available: bool
    bollinger: BollingerBands
    prev_bollinger: BollingerBands | None
    bollinger_available: bool
    momentum: float
    rate_of_change: float
    prev_rate_of_change: float | None

    @property
    def tick_up(self) -> bool:
        return self.prev_price is not None and self.price > self.prev_price

    @property
    def tick_down(self) -> bool:
        return self.prev_price is not None and self.price < self.prev_price


class IndicatorCalculator:
    """Calculator for every indicator the signal generator consumes."""

    def __init__(
        self,
        ma_periods: Sequence[int] = MA_PERIODS,
        rsi_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
        macd_signal: int = 9,
        bollinger_period: int = 20,
        bollinger_k: float = 2.0,
        momentum_period: int = 10,
        roc_period: int = 10,
    ):
        self.ma_periods = tuple(ma_periods)
        self.rsi_period = rsi_period
        self.macd_fast = macd_fast
        self.macd_slow = macd_slow
        self.macd_signal = macd_signal
        self.bollinger_period = bollinger_period
        self.bollinger_k = bollinger_k
        self.momentum_period = momentum_period
        self.roc_period = roc_period

    def _averages(
        self, prices: Sequence[float]
    ) -> tuple[dict[int, float | None], dict[int, float | None]]:
        n = len(prices)
        smas = {p: (sma(prices, p) if n >= p else None) for p in self.ma_periods}
        emas = {p: (ema(prices, p) if n >= p else None) for p in self.ma_periods}
        return smas, emas

    def snapshot(self, prices: Sequence[float]) -> IndicatorSnapshot:
        """
        Calculate a full snapshot for the latest price.

        Args:
            prices: Copied price window, most recent last (at least one price)

        Returns:
            IndicatorSnapshot
        """
        if len(prices) == 0:
            raise ValueError("snapshot requires at least one price")

        prices = [float(p) for p in prices]
        n = len(prices)
        previous = prices[:-1]

        smas, emas = self._averages(prices)
        if previous:
            prev_smas, prev_emas = self._averages(previous)
        else:
            prev_smas = {p: None for p in self.ma_periods}
            prev_emas = {p: None for p in self.ma_periods}

        macd_values = macd(prices, self.macd_fast, self.macd_slow, self.macd_signal)
        bollinger_available = n >= self.bollinger_period
        prev_bands = None
        if len(previous) >= self.bollinger_period:
            prev_bands = bollinger(previous, self.bollinger_period, self.bollinger_k)

        return IndicatorSnapshot(
            price=prices[-1],
            prev_price=previous[-1] if previous else None,
            sample_count=n,
            sma=smas,
            ema=emas,
            prev_sma=prev_smas,
            prev_ema=prev_emas,
            rsi=rsi(prices, self.rsi_period),
            rsi_available=n >= self.rsi_period + 1,
            macd_line=macd_values.line,
            macd_signal=macd_values.signal,
            macd_histogram=macd_values.histogram,
            macd_available=n >= self.macd_slow + self.macd_signal - 1,
            bollinger=bollinger(prices, self.bollinger_period, self.bollinger_k),
            prev_bollinger=prev_bands,
            bollinger_available=bollinger_available,
            momentum=momentum(prices, self.momentum_period),
            rate_of_change=rate_of_change(prices, self.roc_period),
            prev_rate_of_change=(
                rate_of_change(previous, self.roc_period)
                if len(previous) >= self.roc_period + 1
                else None
            ),
        )
