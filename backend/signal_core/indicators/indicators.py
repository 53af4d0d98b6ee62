"""Technical indicators for signal generation.

Pure NumPy implementations working on a price series ordered oldest to
newest. Each function returns the value for the latest point of the
series; ``ema_series`` returns the whole smoothed series because MACD needs
it.

Every function raises ``InsufficientDataError`` when the series is shorter
than the window it needs. Providers catch it and treat the rule as silent.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

import numpy as np

Number = float | int | Decimal


class InsufficientDataError(ValueError):
    """Raised when a price series is shorter than the indicator window."""

    def __init__(self, indicator: str, required: int, available: int):
        self.indicator = indicator
        self.required = required
        self.available = available
        super().__init__(
            f"{indicator} needs at least {required} values, got {available}"
        )


@dataclass(frozen=True)
class MacdResult:
    """Latest MACD line, signal line and histogram."""

    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    """Latest Bollinger envelope."""

    upper: float
    middle: float
    lower: float


def _to_array(values: Sequence[Number]) -> np.ndarray:
    return np.array([float(v) for v in values], dtype=np.float64)


def _require(indicator: str, values: Sequence[Number], required: int) -> None:
    if len(values) < required:
        raise InsufficientDataError(indicator, required, len(values))


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")


# =============================================================================
# Moving averages
# =============================================================================

def sma(values: Sequence[Number], period: int) -> float:
    """
    Calculate Simple Moving Average of the last ``period`` values.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        The SMA at the latest point
    """
    _check_period(period)
    _require("SMA", values, period)
    arr = _to_array(values[-period:])
    return float(np.mean(arr))


def ema_series(values: Sequence[Number], period: int) -> list[float]:
    """
    Calculate the full Exponential Moving Average series.

    Recursive EMA seeded with the first value:
    ema[0] = values[0], ema[i] = values[i] * k + ema[i-1] * (1 - k),
    k = 2 / (period + 1).

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values, same length as input
    """
    _check_period(period)
    _require("EMA", values, period)

    arr = _to_array(values)
    multiplier = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result.tolist()


def ema(values: Sequence[Number], period: int) -> float:
    """Calculate the Exponential Moving Average at the latest point."""
    return ema_series(values, period)[-1]


# =============================================================================
# Oscillators
# =============================================================================

def rsi(values: Sequence[Number], period: int = 14) -> float:
    """
    Calculate Relative Strength Index over the trailing ``period`` changes.

    RSI = 100 - 100 / (1 + RS), RS = average gain / average loss.
    A window without losses gives 100; a flat window gives 50.

    Args:
        values: Sequence of price values (needs period + 1 of them)
        period: RSI period

    Returns:
        RSI in [0, 100]
    """
    _check_period(period)
    _require("RSI", values, period + 1)

    diffs = np.diff(_to_array(values[-(period + 1):]))
    avg_gain = float(np.sum(diffs[diffs > 0])) / period
    avg_loss = float(-np.sum(diffs[diffs < 0])) / period

    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    values: Sequence[Number],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdResult:
    """
    Calculate MACD with a signal line smoothed over the MACD-line history.

    macd line = EMA(fast) - EMA(slow) at every point once the slow EMA has
    its window; signal line = EMA(signal_period) of that macd-line series;
    histogram = macd line - signal line.

    Args:
        values: Sequence of price values
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal line EMA period

    Returns:
        MacdResult for the latest point
    """
    for period in (fast_period, slow_period, signal_period):
        _check_period(period)
    if fast_period >= slow_period:
        raise ValueError(
            f"fast_period ({fast_period}) must be smaller than slow_period ({slow_period})"
        )
    _require("MACD", values, slow_period + signal_period - 1)

    fast = np.array(ema_series(values, fast_period))
    slow = np.array(ema_series(values, slow_period))
    macd_line = (fast - slow)[slow_period - 1:]
    signal_line = ema_series(macd_line.tolist(), signal_period)

    latest_macd = float(macd_line[-1])
    latest_signal = signal_line[-1]
    return MacdResult(
        macd=latest_macd,
        signal=latest_signal,
        histogram=latest_macd - latest_signal,
    )


# =============================================================================
# Volatility
# =============================================================================

def bollinger_bands(
    values: Sequence[Number],
    period: int = 20,
    num_std: float = 2.0,
) -> BollingerBands:
    """
    Calculate Bollinger Bands over the last ``period`` values.

    middle = SMA(period); band = population standard deviation * num_std.

    Args:
        values: Sequence of price values
        period: Window length
        num_std: Standard deviation multiplier (must be >= 0)

    Returns:
        BollingerBands for the latest point
    """
    _check_period(period)
    if num_std < 0 or math.isnan(num_std):
        raise ValueError(f"num_std must be >= 0, got {num_std}")
    _require("Bollinger Bands", values, period)

    window = _to_array(values[-period:])
    middle = float(np.mean(window))
    band = float(np.std(window)) * num_std  # ddof=0: population std

    return BollingerBands(upper=middle + band, middle=middle, lower=middle - band)
