"""RSI threshold strategy package."""

from engine.strategy.rsi.generator import RsiStrategy
from engine.strategy.rsi.models import RsiConfig, RsiState, RsiZone

__all__ = [
    "RsiStrategy",
    "RsiConfig",
    "RsiState",
    "RsiZone",
]
