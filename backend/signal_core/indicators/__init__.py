"""Technical indicators (pure math, no I/O)."""

from signal_core.indicators.indicators import (
    BollingerBands,
    InsufficientDataError,
    MacdResult,
    bollinger_bands,
    ema,
    ema_series,
    macd,
    rsi,
    sma,
)

__all__ = [
    "BollingerBands",
    "InsufficientDataError",
    "MacdResult",
    "bollinger_bands",
    "ema",
    "ema_series",
    "macd",
    "rsi",
    "sma",
]
