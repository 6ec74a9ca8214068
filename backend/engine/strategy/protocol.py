"""Strategy protocol and the collaborator interfaces strategies depend on.

This module provides:
- EventSink: publish point for signal/crossover/trade/status events
- OrderExecutor: order-execution sink used in active mode
- PortfolioProvider: live balance snapshot (affordability, valuation)
- Strategy: runtime-checkable Protocol that strategies must satisfy
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from engine.models import ExecutionResult, PriceTick, Signal, StrategyMode
from engine.strategy.base_config import BaseStrategyConfig
from engine.strategy.kinds import StrategyKind

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@runtime_checkable
class EventSink(Protocol):
    """Fan-out point for engine events ("signal", "crossover", "trade", ...)."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        ...


class NullEventSink:
    """EventSink that drops every event."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        logger.debug("Dropped %s event (no sink configured)", event)


@runtime_checkable
class OrderExecutor(Protocol):
    """Order-execution sink. Implementations should return failures, not raise."""

    async def execute_buy_order(self, product_id: str, amount: float) -> ExecutionResult:
        ...

    async def execute_sell_order(self, product_id: str, amount: float) -> ExecutionResult:
        ...


@runtime_checkable
class PortfolioProvider(Protocol):
    """Current per-currency balances, e.g. {"USD": 1000.0, "BTC": 0.05}."""

    def get_portfolio(self) -> dict[str, float]:
        ...


# ---------------------------------------------------------------------------
# Strategy Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class Strategy(Protocol):
    """Protocol that all trading strategies must implement.

    Strategies are responsible for:
    1. Keeping per-product indicator state warm from the price stream
    2. Detecting crossovers/thresholds and emitting signals
    3. Executing (or simulating) trades in simulation/active mode
    """

    @property
    def name(self) -> str:
        """Unique strategy identifier (e.g., 'sma')."""
        ...

    @property
    def kind(self) -> StrategyKind:
        ...

    @property
    def mode(self) -> StrategyMode:
        ...

    @property
    def config(self) -> BaseStrategyConfig:
        ...

    @property
    def is_running(self) -> bool:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def on_price_update(self, tick: PriceTick) -> Signal | None:
        """Process one price tick; returns the trade signal emitted, if any."""
        ...

    def update_parameters(self, **changes: Any) -> BaseStrategyConfig:
        """Validate and atomically swap the strategy configuration."""
        ...

    def get_indicators(self, product_id: str | None = None) -> dict[str, Any]:
        ...

    def get_performance(self) -> dict[str, Any]:
        ...

    def get_signals(self) -> list[Signal]:
        ...

    def get_description(self) -> str:
        ...
