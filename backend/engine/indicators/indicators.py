"""Technical indicators over trailing price windows.

Every function is a one-shot computation over the tail of its input and
holds no hidden state. Short input is not an error: functions return None
(or a result with None fields) when the window cannot be filled.

EMA and MACD accept an optional previous value so callers that keep
running state can update incrementally instead of recomputing the series.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class MacdResult:
    """MACD line, signal line and histogram (signal/histogram may be None)."""

    macd: float
    signal: float | None = None
    histogram: float | None = None


@dataclass(frozen=True)
class MacdState:
    """Running EMA state for incremental MACD updates."""

    fast_ema: float
    slow_ema: float
    signal_line: float | None = None


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class Stochastic:
    k: float
    d: float | None = None


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _multiplier(period: int) -> float:
    return 2.0 / (period + 1)


# =============================================================================
# Moving averages
# =============================================================================

def sma(prices: Sequence[float], period: int) -> float | None:
    """
    Calculate Simple Moving Average of the last `period` prices.

    Args:
        prices: Sequence of prices, oldest first
        period: Window length

    Returns:
        Mean of the trailing window, or None if fewer than `period` prices
    """
    if period <= 0 or len(prices) < period:
        return None
    return float(np.mean(_as_array(prices[-period:])))


def ema(
    prices: Sequence[float],
    period: int,
    prev_ema: float | None = None,
) -> float | None:
    """
    Calculate Exponential Moving Average.

    Without `prev_ema` the EMA is seeded with the SMA of the last `period`
    prices. With `prev_ema` the latest price is folded in using the
    multiplier 2 / (period + 1).

    Args:
        prices: Sequence of prices, oldest first
        period: EMA period
        prev_ema: EMA value as of the previous price

    Returns:
        EMA value, or None if it cannot be computed yet
    """
    if period <= 0 or len(prices) == 0:
        return None
    if prev_ema is None:
        return sma(prices, period)
    last = float(prices[-1])
    return (last - prev_ema) * _multiplier(period) + prev_ema


def ema_series(prices: Sequence[float], period: int) -> list[float | None]:
    """
    Calculate the full EMA series (SMA-seeded).

    Returns:
        List the same length as `prices`, None before the seed index
    """
    n = len(prices)
    if period <= 0 or n < period:
        return [None] * n

    arr = _as_array(prices)
    multiplier = _multiplier(period)

    result: list[float | None] = [None] * (period - 1)
    current = float(np.mean(arr[:period]))
    result.append(current)
    for price in arr[period:]:
        current = (float(price) - current) * multiplier + current
        result.append(current)
    return result


# =============================================================================
# Oscillators
# =============================================================================

def rsi_from_window(
    gains: Sequence[float],
    losses: Sequence[float],
) -> float | None:
    """
    Calculate RSI from explicit gain/loss windows.

    Losses are absolute values. Returns 100 when the average loss is zero,
    None for empty windows.
    """
    if len(gains) == 0 or len(losses) == 0:
        return None

    avg_gain = float(np.mean(_as_array(gains)))
    avg_loss = float(np.mean(_as_array(losses)))

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(prices: Sequence[float], period: int = 14) -> float | None:
    """
    Calculate Relative Strength Index.

    Averages the gains and losses of the last `period` price changes.

    Args:
        prices: Sequence of prices, oldest first
        period: RSI period

    Returns:
        RSI in [0, 100], or None if fewer than period + 1 prices
    """
    if period <= 0 or len(prices) < period + 1:
        return None

    changes = np.diff(_as_array(prices[-(period + 1):]))
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)
    return rsi_from_window(gains, losses)


def macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
    prev: MacdState | None = None,
) -> MacdResult | None:
    """
    Calculate MACD (fast EMA - slow EMA), its signal line and histogram.

    Without `prev` the EMAs are computed over the whole input; the signal
    line is only available once the MACD series itself spans
    `signal_period` values. With `prev` each EMA is advanced by the latest
    price (and the signal line by the new MACD value).

    Args:
        prices: Sequence of prices, oldest first
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal line EMA period
        prev: Running EMA state as of the previous price

    Returns:
        MacdResult, or None if a period is not positive or there are too
        few prices for both EMAs
    """
    if min(fast_period, slow_period, signal_period) <= 0:
        return None

    if prev is not None:
        if len(prices) == 0:
            return None
        fast = ema(prices, fast_period, prev.fast_ema)
        slow = ema(prices, slow_period, prev.slow_ema)
        line = fast - slow
        if prev.signal_line is None:
            return MacdResult(macd=line)
        signal = (line - prev.signal_line) * _multiplier(signal_period) + prev.signal_line
        return MacdResult(macd=line, signal=signal, histogram=line - signal)

    if len(prices) < slow_period:
        return None

    fast_series = ema_series(prices, fast_period)
    slow_series = ema_series(prices, slow_period)
    macd_series = [
        f - s
        for f, s in zip(fast_series, slow_series)
        if f is not None and s is not None
    ]
    if not macd_series:
        return None
    line = macd_series[-1]

    signal_series = ema_series(macd_series, signal_period)
    signal = signal_series[-1] if signal_series else None
    if signal is None:
        return MacdResult(macd=line)
    return MacdResult(macd=line, signal=signal, histogram=line - signal)


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands | None:
    """
    Calculate Bollinger Bands.

    middle = SMA(period); upper/lower = middle +/- std_dev * population
    standard deviation of the same window.
    """
    middle = sma(prices, period)
    if middle is None:
        return None

    window = _as_array(prices[-period:])
    sd = float(np.std(window))
    return BollingerBands(
        upper=middle + sd * std_dev,
        middle=middle,
        lower=middle - sd * std_dev,
    )


def _percent_k(
    highs: np.ndarray,
    lows: np.ndarray,
    close: float,
) -> float:
    highest_high = float(np.max(highs))
    lowest_low = float(np.min(lows))
    if highest_high == lowest_low:
        return 50.0
    return (close - lowest_low) / (highest_high - lowest_low) * 100.0


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    k_period: int = 14,
    d_period: int = 3,
) -> Stochastic | None:
    """
    Calculate the stochastic oscillator.

    %K compares the latest close with the high/low range of the last
    `k_period` bars. %D is the mean of the last `d_period` %K values and is
    None until enough bars exist to compute them. A flat range gives 50.
    """
    n = min(len(highs), len(lows), len(closes))
    if k_period <= 0 or d_period <= 0 or n < k_period:
        return None

    h = _as_array(highs[-n:])
    l = _as_array(lows[-n:])
    c = _as_array(closes[-n:])

    k_values = [
        _percent_k(h[end - k_period:end], l[end - k_period:end], float(c[end - 1]))
        for end in range(max(k_period, n - d_period + 1), n + 1)
    ]

    k = k_values[-1]
    d = float(np.mean(k_values)) if len(k_values) >= d_period else None
    return Stochastic(k=k, d=d)


def williams_r(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """Calculate Williams %R in [-100, 0]; a flat range gives -50."""
    if period <= 0 or min(len(highs), len(lows), len(closes)) < period:
        return None

    highest_high = float(np.max(_as_array(highs[-period:])))
    lowest_low = float(np.min(_as_array(lows[-period:])))
    if highest_high == lowest_low:
        return -50.0

    close = float(closes[-1])
    return (highest_high - close) / (highest_high - lowest_low) * -100.0


# =============================================================================
# Volatility / volume
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range for each bar after the first.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    """
    n = min(len(highs), len(lows), len(closes))
    if n < 2:
        return []

    h = _as_array(highs[:n])[1:]
    l = _as_array(lows[:n])[1:]
    prev_c = _as_array(closes[:n])[:-1]

    tr = np.maximum(h - l, np.maximum(np.abs(h - prev_c), np.abs(l - prev_c)))
    return tr.tolist()


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Calculate Average True Range as the mean of the last `period` TRs.

    Needs period + 1 bars.
    """
    tr = true_range(highs, lows, closes)
    if period <= 0 or len(tr) < period:
        return None
    return float(np.mean(tr[-period:]))


def vwap(prices: Sequence[float], volumes: Sequence[float]) -> float | None:
    """
    Calculate Volume Weighted Average Price over the whole input.

    Returns None on length mismatch, empty input, or zero total volume.
    """
    if len(prices) != len(volumes) or len(prices) == 0:
        return None

    p = _as_array(prices)
    v = _as_array(volumes)
    total_volume = float(np.sum(v))
    if total_volume <= 0:
        return None
    return float(np.sum(p * v)) / total_volume


def mfi(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    volumes: Sequence[float],
    period: int = 14,
) -> float | None:
    """
    Calculate Money Flow Index over the last `period` typical-price changes.

    Returns 100 when there is no negative money flow.
    """
    n = min(len(highs), len(lows), len(closes), len(volumes))
    if period <= 0 or n < period + 1:
        return None

    window = slice(n - period - 1, n)
    typical = (
        _as_array(highs[:n])[window]
        + _as_array(lows[:n])[window]
        + _as_array(closes[:n])[window]
    ) / 3.0
    money_flow = typical * _as_array(volumes[:n])[window]

    diffs = np.diff(typical)
    flows = money_flow[1:]
    positive_flow = float(np.sum(flows[diffs > 0]))
    negative_flow = float(np.sum(flows[diffs < 0]))

    if negative_flow == 0:
        return 100.0

    money_ratio = positive_flow / negative_flow
    return 100.0 - (100.0 / (1.0 + money_ratio))


def volatility(prices: Sequence[float], period: int = 20) -> float | None:
    """Population standard deviation of simple returns over the last `period` changes."""
    if period <= 0 or len(prices) < period + 1:
        return None

    window = _as_array(prices[-(period + 1):])
    if np.any(window[:-1] == 0):
        return None
    returns = np.diff(window) / window[:-1]
    return float(np.std(returns))
