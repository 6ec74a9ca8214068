"""Market condition analysis over a trailing price history.

Trend, momentum and volatility classification plus support/resistance
detection from local extremes. Like the indicators, every function is
stateless and returns None when the history is too short.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from engine.indicators.indicators import rsi


class Trend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"


class Momentum(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    NEUTRAL = "neutral"


class VolatilityLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class PriceChange:
    absolute: float
    percentage: float


@dataclass(frozen=True)
class MarketCondition:
    """Snapshot of the market for one product at its latest price."""

    price: float
    trend: Trend | None
    momentum: Momentum | None
    volatility: VolatilityLevel | None
    rsi: float | None
    support: float | None
    resistance: float | None

    @property
    def overbought(self) -> bool:
        return self.rsi is not None and self.rsi > 70

    @property
    def oversold(self) -> bool:
        return self.rsi is not None and self.rsi < 30

    @property
    def near_support(self) -> bool:
        return self.support is not None and _within(self.price, self.support, 0.02)

    @property
    def near_resistance(self) -> bool:
        return self.resistance is not None and _within(self.price, self.resistance, 0.02)

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "trend": self.trend.value if self.trend else None,
            "momentum": self.momentum.value if self.momentum else None,
            "volatility": self.volatility.value if self.volatility else None,
            "rsi": self.rsi,
            "support": self.support,
            "resistance": self.resistance,
            "overbought": self.overbought,
            "oversold": self.oversold,
            "near_support": self.near_support,
            "near_resistance": self.near_resistance,
        }


def _within(price: float, level: float, tolerance: float) -> bool:
    if price <= 0:
        return False
    return abs(price - level) / price < tolerance


def _percent_change(recent: Sequence[float], older: Sequence[float]) -> float | None:
    older_avg = float(np.mean(older))
    if older_avg == 0:
        return None
    return (float(np.mean(recent)) - older_avg) / older_avg * 100.0


# =============================================================================
# Direction
# =============================================================================

def analyze_trend(
    prices: Sequence[float],
    window: int = 20,
    threshold_percent: float = 2.0,
) -> Trend | None:
    """
    Compare the mean of the last `window` prices with the window before it.

    A move of more than `threshold_percent` either way is a trend, anything
    smaller is sideways. The older window may be partial but not empty.

    Returns:
        Trend, or None with `window` prices or fewer
    """
    if window <= 0 or len(prices) <= window:
        return None

    recent = prices[-window:]
    older = prices[-2 * window:-window]
    change = _percent_change(recent, older)
    if change is None:
        return None

    if change > threshold_percent:
        return Trend.BULLISH
    if change < -threshold_percent:
        return Trend.BEARISH
    return Trend.SIDEWAYS


def analyze_momentum(
    prices: Sequence[float],
    window: int = 5,
    threshold_percent: float = 1.0,
) -> Momentum | None:
    """
    Compare the mean of the last `window` prices with the `window` before.

    Returns:
        Momentum, or None with fewer than 2 * window prices
    """
    if window <= 0 or len(prices) < 2 * window:
        return None

    change = _percent_change(prices[-window:], prices[-2 * window:-window])
    if change is None:
        return None

    if change > threshold_percent:
        return Momentum.INCREASING
    if change < -threshold_percent:
        return Momentum.DECREASING
    return Momentum.NEUTRAL


def classify_volatility(
    prices: Sequence[float],
    period: int = 20,
) -> VolatilityLevel | None:
    """
    Classify the population standard deviation of the last `period` prices
    relative to the latest price: above 5% is high, above 2% is medium.
    """
    if period <= 0 or len(prices) < period:
        return None

    current = float(prices[-1])
    if current <= 0:
        return None

    deviation = float(np.std(np.asarray(prices[-period:], dtype=np.float64)))
    percent = deviation / current * 100.0

    if percent > 5:
        return VolatilityLevel.HIGH
    if percent > 2:
        return VolatilityLevel.MEDIUM
    return VolatilityLevel.LOW


def price_change(prices: Sequence[float], lookback: int = 1440) -> PriceChange | None:
    """
    Change of the latest price against the one `lookback` points earlier,
    or against the oldest price when the history is shorter.
    """
    if lookback <= 0 or len(prices) < 2:
        return None

    current = float(prices[-1])
    reference = float(prices[max(0, len(prices) - 1 - lookback)])
    if reference == 0:
        return None
    return PriceChange(
        absolute=current - reference,
        percentage=(current - reference) / reference * 100.0,
    )


# =============================================================================
# Support / resistance
# =============================================================================

def _local_extremes(prices: Sequence[float], lows: bool) -> list[float]:
    """Prices strictly beyond both neighbours on each side (two bars deep)."""
    found = []
    for i in range(2, len(prices) - 2):
        neighbours = (prices[i - 2], prices[i - 1], prices[i + 1], prices[i + 2])
        if lows and all(prices[i] < p for p in neighbours):
            found.append(float(prices[i]))
        elif not lows and all(prices[i] > p for p in neighbours):
            found.append(float(prices[i]))
    return found


def _strongest_level(extremes: list[float], tolerance: float) -> float | None:
    """
    Group extremes into levels and return the level touched most often.

    An extreme joins the first level it is within `tolerance` of (as a
    ratio of the level); otherwise it opens a new one. Ties go to the
    level opened first.
    """
    levels: list[list[float]] = []
    for price in extremes:
        for level in levels:
            if level[0] and abs(price - level[0]) / abs(level[0]) < tolerance:
                level.append(price)
                break
        else:
            levels.append([price])

    if not levels:
        return None
    return max(levels, key=len)[0]


def find_support(
    prices: Sequence[float],
    lookback: int = 50,
    tolerance: float = 0.01,
) -> float | None:
    """
    Find the most-touched support level among local lows of the last
    `lookback` prices.

    Returns:
        Support price, or None with fewer than `lookback` prices or no lows
    """
    if lookback <= 0 or len(prices) < lookback:
        return None
    return _strongest_level(_local_extremes(prices[-lookback:], lows=True), tolerance)


def find_resistance(
    prices: Sequence[float],
    lookback: int = 50,
    tolerance: float = 0.01,
) -> float | None:
    """Mirror of find_support over local highs."""
    if lookback <= 0 or len(prices) < lookback:
        return None
    return _strongest_level(_local_extremes(prices[-lookback:], lows=False), tolerance)


# =============================================================================
# Combined
# =============================================================================

def market_condition(prices: Sequence[float]) -> MarketCondition | None:
    """
    Analyze a product's price history.

    Parts that need more history than is available are None; the whole
    result is None only for an empty history.
    """
    if len(prices) == 0:
        return None

    return MarketCondition(
        price=float(prices[-1]),
        trend=analyze_trend(prices),
        momentum=analyze_momentum(prices),
        volatility=classify_volatility(prices),
        rsi=rsi(prices),
        support=find_support(prices),
        resistance=find_resistance(prices),
    )
