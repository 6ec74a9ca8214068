"""Data models for the signal engine."""

from engine.models.market import PricePoint, PriceTick, ProductId, split_product_id
from engine.models.signal import (
    CrossoverDirection,
    CrossoverEvent,
    PositionState,
    Signal,
    SignalType,
    StrategyMode,
)
from engine.models.trade import (
    ExecutionFailure,
    ExecutionResult,
    PerformanceSummary,
    Position,
    Side,
    Trade,
)

__all__ = [
    "PricePoint",
    "PriceTick",
    "ProductId",
    "split_product_id",
    "CrossoverDirection",
    "CrossoverEvent",
    "PositionState",
    "Signal",
    "SignalType",
    "StrategyMode",
    "ExecutionFailure",
    "ExecutionResult",
    "PerformanceSummary",
    "Position",
    "Side",
    "Trade",
]
