"""SMA crossover strategy package."""

from engine.strategy.sma.generator import SmaStrategy
from engine.strategy.sma.models import SmaConfig, SmaState

__all__ = [
    "SmaStrategy",
    "SmaConfig",
    "SmaState",
]
