"""MACD crossover strategy package."""

from engine.strategy.macd.generator import MacdStrategy
from engine.strategy.macd.models import MacdConfig, MacdState

__all__ = [
    "MacdStrategy",
    "MacdConfig",
    "MacdState",
]
