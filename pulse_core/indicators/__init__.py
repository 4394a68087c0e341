"""Technical indicators (pure math, no I/O)."""

from pulse_core.indicators.indicators import (
    MA_PERIODS,
    MACD,
    BollingerBands,
    IndicatorCalculator,
    IndicatorSnapshot,
    bollinger,
    ema,
    ema_series,
    macd,
    momentum,
    rate_of_change,
    rsi,
    sma,
)

__all__ = [
    "MA_PERIODS",
    "MACD",
    "BollingerBands",
    "IndicatorCalculator",
    "IndicatorSnapshot",
    "bollinger",
    "ema",
    "ema_series",
    "macd",
    "momentum",
    "rate_of_change",
    "rsi",
    "sma",
]
