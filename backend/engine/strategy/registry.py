"""Factory for the built-in strategies.

The set of strategies is closed: StrategyKind enumerates every kind the
engine knows about and _STRATEGIES maps each kind to its class.

Usage:
    strategy = create_strategy("sma", {"period": 5}, ledger=ledger)
    names = list_strategies()
"""

from __future__ import annotations

import logging
from typing import Any

from engine.errors import UnknownStrategyError
from engine.strategy.base import BaseStrategy
from engine.strategy.kinds import StrategyKind
from engine.strategy.macd import MacdStrategy
from engine.strategy.rsi import RsiStrategy
from engine.strategy.sma import SmaStrategy

logger = logging.getLogger(__name__)

_STRATEGIES: dict[StrategyKind, type[BaseStrategy]] = {
    StrategyKind.SMA: SmaStrategy,
    StrategyKind.RSI: RsiStrategy,
    StrategyKind.MACD: MacdStrategy,
}


def resolve_kind(name: str | StrategyKind) -> StrategyKind:
    """Map a strategy name (case-insensitive) to its kind.

    Raises:
        UnknownStrategyError: If no strategy exists under the given name.
    """
    if isinstance(name, StrategyKind):
        return name
    try:
        return StrategyKind(name.strip().lower())
    except ValueError:
        raise UnknownStrategyError(name, list_strategies()) from None


def get_strategy_class(name: str | StrategyKind) -> type[BaseStrategy]:
    """Get the strategy class by name (without instantiating).

    Raises:
        UnknownStrategyError: If no strategy exists under the given name.
    """
    return _STRATEGIES[resolve_kind(name)]


def create_strategy(
    name: str | StrategyKind,
    parameters: dict[str, Any] | None = None,
    **collaborators: Any,
) -> BaseStrategy:
    """Create a strategy instance by name.

    Args:
        name: Strategy name or kind.
        parameters: Raw config values, validated into the strategy's config.
        **collaborators: ledger, executor, portfolio and event_sink.

    Raises:
        UnknownStrategyError: If no strategy exists under the given name.
        InvalidParametersError: If the parameters fail validation.
    """
    cls = get_strategy_class(name)
    config = cls.build_config(parameters)
    logger.debug("Creating strategy %s with %s", cls.kind.value, parameters or {})
    return cls(config=config, **collaborators)


def list_strategies() -> list[str]:
    """Return the sorted list of strategy names."""
    return sorted(kind.value for kind in _STRATEGIES)
