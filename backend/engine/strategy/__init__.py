"""Strategy state machines.

Public API:
- Strategy: Protocol that all strategies satisfy
- BaseStrategy: shared gating/execution machinery for the built-ins
- SmaStrategy, RsiStrategy, MacdStrategy: the built-in strategies
- create_strategy: Factory function to instantiate strategies by name
- list_strategies: Names of all strategies
- get_strategy_class: Get strategy class by name without instantiating
"""

from engine.strategy.base import BaseStrategy, Candidate, ProductState
from engine.strategy.base_config import BaseStrategyConfig
from engine.strategy.kinds import StrategyKind
from engine.strategy.macd import MacdConfig, MacdStrategy
from engine.strategy.protocol import (
    EventSink,
    NullEventSink,
    OrderExecutor,
    PortfolioProvider,
    Strategy,
)
from engine.strategy.registry import (
    create_strategy,
    get_strategy_class,
    list_strategies,
    resolve_kind,
)
from engine.strategy.rsi import RsiConfig, RsiStrategy
from engine.strategy.sma import SmaConfig, SmaStrategy

__all__ = [
    "Strategy",
    "BaseStrategy",
    "BaseStrategyConfig",
    "Candidate",
    "ProductState",
    "StrategyKind",
    "EventSink",
    "NullEventSink",
    "OrderExecutor",
    "PortfolioProvider",
    "SmaStrategy",
    "SmaConfig",
    "RsiStrategy",
    "RsiConfig",
    "MacdStrategy",
    "MacdConfig",
    "create_strategy",
    "get_strategy_class",
    "list_strategies",
    "resolve_kind",
]
