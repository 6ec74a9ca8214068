"""Closed set of strategy kinds."""

from enum import Enum


class StrategyKind(str, Enum):
    """Strategies known to the engine. Value is the public strategy name."""

    SMA = "sma"
    RSI = "rsi"
    MACD = "macd"
