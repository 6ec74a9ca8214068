"""Strategy lifecycle: start, stop, update and tick dispatch.

At most one instance per strategy kind runs at a time. All running
strategies share the trading engine's ledger, so starting a strategy
resets session performance and the session state (positions, signal
prices, trades) of every strategy already running.
"""

import logging
from typing import Any

from engine.errors import StrategyAlreadyRunningError, StrategyNotRunningError
from engine.ledger import TradeLedger
from engine.models import PerformanceSummary, PriceTick, Signal
from engine.strategy import (
    BaseStrategy,
    EventSink,
    NullEventSink,
    create_strategy,
    list_strategies,
    resolve_kind,
)
from trader.services.trading_engine import TradingEngine
from trader.strategy_config import StrategiesConfig

logger = logging.getLogger(__name__)


class StrategyManager:
    """Owns the running strategies and fans price ticks out to them."""

    def __init__(
        self,
        trading_engine: TradingEngine | None = None,
        event_sink: EventSink | None = None,
        strategy_config: StrategiesConfig | None = None,
        ledger: TradeLedger | None = None,
    ):
        self._trading_engine = trading_engine
        self._event_sink: EventSink = event_sink or NullEventSink()
        self._strategy_config = strategy_config or StrategiesConfig()
        if trading_engine is not None:
            self._ledger = trading_engine.ledger
        else:
            self._ledger = ledger or TradeLedger()

        # Insertion order is start order, which is also dispatch order
        self._active: dict[str, BaseStrategy] = {}

    @property
    def ledger(self) -> TradeLedger:
        return self._ledger

    def _emit_status(self, action: str, name: str, **extra: Any) -> None:
        payload = {
            "action": action,
            "strategy": name,
            "strategies": self.get_active_strategies(),
            **extra,
        }
        try:
            self._event_sink.emit("strategy-status", payload)
        except Exception as e:
            logger.error(f"Event sink error on 'strategy-status': {e}")

    def _get_running(self, name: str) -> BaseStrategy:
        strategy = self._active.get(name.strip().lower())
        if strategy is None:
            raise StrategyNotRunningError(name)
        return strategy

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_strategy(
        self,
        name: str,
        parameters: dict[str, Any] | None = None,
    ) -> BaseStrategy:
        """
        Create and start a strategy.

        Parameters are layered over the defaults from strategies.yaml.

        Raises:
            UnknownStrategyError: No strategy exists under `name`
            StrategyAlreadyRunningError: The strategy is already running
            InvalidParametersError: The parameters fail validation
        """
        kind = resolve_kind(name)
        key = kind.value
        if key in self._active:
            raise StrategyAlreadyRunningError(key)

        merged = {**self._strategy_config.parameters_for(key), **(parameters or {})}
        strategy = create_strategy(
            kind,
            merged,
            ledger=self._ledger,
            executor=self._trading_engine,
            portfolio=self._trading_engine,
            event_sink=self._event_sink,
        )

        # Fresh measurement window for the new session
        if self._trading_engine is not None:
            self._trading_engine.reset_performance_data()
        else:
            self._ledger.reset_performance_data()
        for running in self._active.values():
            running.reset_session()

        self._active[key] = strategy
        await strategy.start()
        logger.info(f"Strategy started: {key} ({strategy.mode.value})")

        self._emit_status("started", key)
        return strategy

    async def start_configured_strategies(self) -> list[BaseStrategy]:
        """Start every strategy marked auto_start in strategies.yaml."""
        started = []
        for entry in self._strategy_config.get_auto_start():
            if entry.name in self._active:
                continue
            started.append(await self.start_strategy(entry.name))
        return started

    async def stop_strategy(self, name: str) -> None:
        """
        Raises:
            StrategyNotRunningError: The strategy is not running
        """
        strategy = self._get_running(name)
        await strategy.stop()
        del self._active[strategy.name]
        logger.info(f"Strategy stopped: {strategy.name}")

        self._emit_status("stopped", strategy.name)

    async def stop_all_strategies(self) -> None:
        for name, strategy in list(self._active.items()):
            await strategy.stop()
            logger.info(f"Strategy stopped: {name}")
        self._active.clear()

    async def update_strategy(
        self,
        name: str,
        parameters: dict[str, Any],
    ) -> BaseStrategy:
        """
        Validate and swap a running strategy's parameters.

        Raises:
            StrategyNotRunningError: The strategy is not running
            InvalidParametersError: The merged parameters fail validation;
                the strategy keeps its previous config
        """
        strategy = self._get_running(name)
        strategy.update_parameters(**parameters)
        logger.info(f"Strategy parameters updated: {strategy.name} {parameters}")

        self._emit_status("updated", strategy.name, parameters=parameters)
        return strategy

    # ------------------------------------------------------------------
    # Tick dispatch
    # ------------------------------------------------------------------

    async def on_price_update(self, tick: PriceTick) -> list[Signal]:
        """
        Deliver a tick to every running strategy in start order.

        A strategy that raises is logged and skipped; the others still
        receive the tick.
        """
        if self._trading_engine is not None:
            self._trading_engine.update_price(tick)

        signals: list[Signal] = []
        for name, strategy in list(self._active.items()):
            try:
                signal = await strategy.on_price_update(tick)
            except Exception:
                logger.exception(f"Strategy {name} failed on {tick.product_id} @ {tick.price}")
                continue
            if signal is not None:
                signals.append(signal)
        return signals

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_strategies(self) -> list[dict[str, Any]]:
        return [
            {"name": name, "active": name in self._active}
            for name in list_strategies()
        ]

    def get_strategy(self, name: str) -> BaseStrategy | None:
        return self._active.get(name.strip().lower())

    def get_all_strategies(self) -> list[str]:
        return list_strategies()

    def get_strategy_performance(self, name: str) -> dict[str, Any] | None:
        strategy = self.get_strategy(name)
        return strategy.get_performance() if strategy else None

    def get_all_performance(self) -> dict[str, dict[str, Any]]:
        return {name: s.get_performance() for name, s in self._active.items()}

    def get_signals(self, name: str) -> list[Signal]:
        strategy = self.get_strategy(name)
        return strategy.get_signals() if strategy else []

    def get_performance_summary(self) -> PerformanceSummary:
        return self._ledger.get_performance_summary()
