"""Tests for market condition analysis."""

import pytest

from engine.indicators import (
    Momentum,
    Trend,
    VolatilityLevel,
    analyze_momentum,
    analyze_trend,
    classify_volatility,
    find_resistance,
    find_support,
    market_condition,
    price_change,
)


def _with_extremes(extremes: dict[int, float], base: float = 100.0, n: int = 50) -> list[float]:
    prices = [base] * n
    for index, price in extremes.items():
        prices[index] = price
    return prices


class TestTrend:
    """Tests for analyze_trend."""

    def test_bullish(self):
        assert analyze_trend([100.0] * 20 + [105.0] * 20) == Trend.BULLISH

    def test_bearish(self):
        assert analyze_trend([100.0] * 20 + [95.0] * 20) == Trend.BEARISH

    def test_sideways_within_threshold(self):
        assert analyze_trend([100.0] * 20 + [101.0] * 20) == Trend.SIDEWAYS

    def test_partial_older_window(self):
        assert analyze_trend([100.0] * 5 + [110.0] * 20) == Trend.BULLISH

    def test_insufficient_data(self):
        assert analyze_trend([100.0] * 20) is None
        assert analyze_trend([100.0] * 30, window=0) is None


class TestMomentum:
    """Tests for analyze_momentum."""

    def test_increasing(self):
        assert analyze_momentum([100.0] * 5 + [102.0] * 5) == Momentum.INCREASING

    def test_decreasing(self):
        assert analyze_momentum([100.0] * 5 + [98.0] * 5) == Momentum.DECREASING

    def test_neutral(self):
        assert analyze_momentum([100.0] * 5 + [99.5] * 5) == Momentum.NEUTRAL

    def test_insufficient_data(self):
        assert analyze_momentum([100.0] * 9) is None


class TestVolatilityClassification:
    """Tests for classify_volatility."""

    def test_flat_is_low(self):
        assert classify_volatility([100.0] * 20) == VolatilityLevel.LOW

    def test_medium(self):
        # std 3 against a last price of 103
        assert classify_volatility([97.0, 103.0] * 10) == VolatilityLevel.MEDIUM

    def test_high(self):
        # std 10 against a last price of 110
        assert classify_volatility([90.0, 110.0] * 10) == VolatilityLevel.HIGH

    def test_insufficient_data(self):
        assert classify_volatility([100.0] * 19) is None


class TestPriceChange:
    """Tests for price_change."""

    def test_short_history_uses_oldest_price(self):
        change = price_change([100.0, 110.0])
        assert change.absolute == pytest.approx(10.0)
        assert change.percentage == pytest.approx(10.0)

    def test_lookback(self):
        change = price_change([100.0, 50.0, 75.0], lookback=1)
        assert change.absolute == pytest.approx(25.0)
        assert change.percentage == pytest.approx(50.0)

    def test_single_price(self):
        assert price_change([100.0]) is None


class TestLevels:
    """Tests for support and resistance detection."""

    def test_support_is_most_touched_low(self):
        prices = _with_extremes({10: 90.0, 25: 90.5, 40: 80.0})
        assert find_support(prices) == pytest.approx(90.0)

    def test_resistance_is_most_touched_high(self):
        prices = _with_extremes({10: 110.0, 30: 110.5, 45: 120.0})
        assert find_resistance(prices) == pytest.approx(110.0)

    def test_ties_go_to_first_level(self):
        prices = _with_extremes({10: 80.0, 30: 90.0})
        assert find_support(prices) == pytest.approx(80.0)

    def test_flat_prices_have_no_levels(self):
        assert find_support([100.0] * 50) is None
        assert find_resistance([100.0] * 50) is None

    def test_insufficient_data(self):
        prices = _with_extremes({10: 90.0}, n=49)
        assert find_support(prices) is None


class TestMarketCondition:
    """Tests for the combined market_condition snapshot."""

    def test_empty_history(self):
        assert market_condition([]) is None

    def test_short_history_has_price_only(self):
        condition = market_condition([100.0, 101.0])

        assert condition.price == 101.0
        assert condition.trend is None
        assert condition.rsi is None
        assert not condition.overbought
        assert not condition.near_support

    def test_full_history(self):
        prices = _with_extremes({10: 98.5, 30: 98.6})

        condition = market_condition(prices)

        assert condition.trend == Trend.SIDEWAYS
        assert condition.momentum == Momentum.NEUTRAL
        assert condition.volatility == VolatilityLevel.LOW
        assert condition.support == pytest.approx(98.5)
        assert condition.resistance is None
        assert condition.near_support
        assert not condition.near_resistance
        # No losses in the last 14 changes
        assert condition.rsi == pytest.approx(100.0)
        assert condition.overbought

        data = condition.to_dict()
        assert data["trend"] == "sideways"
        assert data["volatility"] == "low"
        assert data["near_support"] is True
