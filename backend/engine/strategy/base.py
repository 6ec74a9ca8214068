"""Shared machinery for the built-in strategies.

BaseStrategy owns everything that is the same for SMA, RSI and MACD:
per-product state maps, the movement filter, mode gating, signal emission
and trade execution. Subclasses only keep their indicator state warm and
report crossover candidates via _detect().

Tick handling order matters: position and last-signal price are updated
synchronously *before* the execution call is awaited, so a duplicate tick
arriving while an order is in flight cannot trigger the same crossover
twice.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import ValidationError

from engine.errors import InvalidParametersError
from engine.ledger import TradeLedger
from engine.models import (
    CrossoverDirection,
    CrossoverEvent,
    ExecutionFailure,
    ExecutionResult,
    PositionState,
    PricePoint,
    PriceTick,
    ProductId,
    Side,
    Signal,
    SignalType,
    StrategyMode,
    Trade,
    split_product_id,
)
from engine.strategy.base_config import BaseStrategyConfig
from engine.strategy.kinds import StrategyKind
from engine.strategy.protocol import (
    EventSink,
    NullEventSink,
    OrderExecutor,
    PortfolioProvider,
)

logger = logging.getLogger(__name__)

MAX_SIGNALS = 1000
MAX_STRATEGY_TRADES = 1000
RECENT_TRADES = 10

# Currencies valued at face value in the portfolio snapshot
QUOTE_CURRENCIES = ("USD", "USDC", "USDT")


@dataclass
class ProductState:
    """Per-product rolling state common to all strategies."""

    points: list[PricePoint] = field(default_factory=list)
    position: PositionState = PositionState.NONE

    def push_point(self, point: PricePoint, cap: int) -> None:
        """Append a point, evicting the oldest beyond `cap`."""
        self.points.append(point)
        self.trim(cap)

    def trim(self, cap: int) -> None:
        if len(self.points) > cap:
            del self.points[:-cap]

    @property
    def history(self) -> list[float]:
        return [p.price for p in self.points]

    @property
    def last_price(self) -> float | None:
        return self.points[-1].price if self.points else None


@dataclass(frozen=True)
class Candidate:
    """A detected crossover/threshold event, before filtering and gating."""

    direction: CrossoverDirection
    reason: str
    confidence: float
    indicators: dict[str, Any]


class BaseStrategy(ABC):
    """Common lifecycle, gating and execution for the built-in strategies."""

    kind: ClassVar[StrategyKind]
    display_name: ClassVar[str]
    config_class: ClassVar[type[BaseStrategyConfig]]

    def __init__(
        self,
        config: BaseStrategyConfig | None = None,
        ledger: TradeLedger | None = None,
        executor: OrderExecutor | None = None,
        portfolio: PortfolioProvider | None = None,
        event_sink: EventSink | None = None,
    ):
        self._config = config or self.config_class()
        self._ledger = ledger or TradeLedger()
        self._executor = executor
        self._portfolio = portfolio
        self._event_sink: EventSink = event_sink or NullEventSink()

        self._running = False
        self._states: dict[ProductId, ProductState] = {}
        self._last_signal_price: dict[ProductId, float] = {}
        self._signals: deque[Signal] = deque(maxlen=MAX_SIGNALS)
        self._trades: deque[Trade] = deque(maxlen=MAX_STRATEGY_TRADES)

        logger.info(
            f"[{self.name.upper()}] Strategy initialized: {self._describe_config()}"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def mode(self) -> StrategyMode:
        return self._config.mode

    @property
    def config(self) -> BaseStrategyConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def ledger(self) -> TradeLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @classmethod
    def build_config(cls, parameters: dict[str, Any] | None = None) -> BaseStrategyConfig:
        """Validate raw parameters into this strategy's config type.

        Raises:
            InvalidParametersError: If validation fails
        """
        try:
            return cls.config_class.model_validate(parameters or {})
        except ValidationError as e:
            raise InvalidParametersError(
                f"Invalid parameters for strategy '{cls.kind.value}': {e}"
            ) from e

    def update_parameters(self, **changes: Any) -> BaseStrategyConfig:
        """
        Merge `changes` into the current config, validate, and swap it in.

        Switching into simulation or active mode starts a fresh session
        (ledger, positions and signal prices are reset).

        Raises:
            InvalidParametersError: If the merged config is invalid; the
                current config is left untouched
        """
        merged = {**self._config.model_dump(), **changes}
        new_config = self.build_config(merged)

        old_config = self._config
        self._config = new_config
        self._on_config_changed(old_config, new_config)

        logger.info(f"[{self.name.upper()}] Parameters updated: {changes}")

        if new_config.mode != old_config.mode:
            logger.info(
                f"[{self.name.upper()}] Mode {old_config.mode.value} -> {new_config.mode.value}"
            )
            if new_config.mode.is_trading:
                self._begin_session()

        return new_config

    def _on_config_changed(
        self,
        old: BaseStrategyConfig,
        new: BaseStrategyConfig,
    ) -> None:
        """Adjust per-product state after a config swap (periods etc.)."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start processing ticks; trading modes begin a fresh session."""
        self._running = True
        if self.mode.is_trading:
            self._begin_session()
        logger.info(f"[{self.name.upper()}] Started in {self.mode.value} mode")

    async def stop(self) -> None:
        """Stop trading. Indicator state is kept until the instance is dropped."""
        self._running = False
        if self.mode != StrategyMode.STOPPED:
            self._config = self._config.model_copy(update={"mode": StrategyMode.STOPPED})
        logger.info(f"[{self.name.upper()}] Stopped")

    def _begin_session(self) -> None:
        self._ledger.reset_performance_data()
        self.reset_session()

    def reset_session(self) -> None:
        """
        Drop positions, signal prices and trades of the current session.

        Must be called whenever the shared ledger is reset so that no
        strategy holds a position the ledger has forgotten. Indicator state
        is kept.
        """
        self._trades.clear()
        self._last_signal_price.clear()
        for state in self._states.values():
            state.position = PositionState.NONE
            self._reset_session_flags(state)
        logger.info(
            f"[{self.name.upper()}] Reset performance and positions for fresh "
            f"{self.mode.value} session"
        )

    def _reset_session_flags(self, state: ProductState) -> None:
        """Clear strategy-specific per-session flags."""

    # ------------------------------------------------------------------
    # Per-product state
    # ------------------------------------------------------------------

    @abstractmethod
    def _new_state(self) -> ProductState:
        ...

    def _get_state(self, product_id: ProductId) -> ProductState:
        state = self._states.get(product_id)
        if state is None:
            state = self._new_state()
            self._states[product_id] = state
            logger.debug(f"[{self.name.upper()}] Tracking new product {product_id}")
        return state

    # ------------------------------------------------------------------
    # Tick processing
    # ------------------------------------------------------------------

    @abstractmethod
    def _detect(
        self,
        product_id: ProductId,
        state: ProductState,
        point: PricePoint,
    ) -> Candidate | None:
        """Fold `point` into the state and return a crossover candidate, if any."""

    async def on_price_update(self, tick: PriceTick) -> Signal | None:
        """
        Process a price tick for one product.

        Indicators are recomputed in every mode. Trade signals and trade
        execution only happen in simulation/active mode.

        Args:
            tick: Price update from the feed

        Returns:
            The trade Signal emitted for this tick, or None
        """
        product_id = tick.product
        price = tick.price

        self._ledger.mark_price(product_id, price)
        state = self._get_state(product_id)

        candidate = self._detect(product_id, state, tick.to_point())
        if candidate is None:
            return None

        return await self._handle_candidate(product_id, state, price, candidate)

    async def _handle_candidate(
        self,
        product_id: ProductId,
        state: ProductState,
        price: float,
        candidate: Candidate,
    ) -> Signal | None:
        signal_type = candidate.direction.signal_type
        tag = self.name.upper()

        if not self.should_generate_crossover_signal(product_id, price, signal_type):
            return None

        self._emit(
            "crossover",
            CrossoverEvent(
                strategy=self.name,
                product_id=product_id,
                direction=candidate.direction,
                price=price,
                indicators=candidate.indicators,
            ).model_dump(mode="json"),
        )

        if not self.mode.is_trading:
            logger.debug(
                f"[{tag}] {signal_type.value.upper()} crossover on {product_id} "
                f"ignored for trading (mode={self.mode.value})"
            )
            return None

        if not self._position_permits(state, signal_type):
            logger.debug(
                f"[{tag}] {signal_type.value.upper()} on {product_id} suppressed, "
                f"position is {state.position.value}"
            )
            return None

        signal = Signal(
            type=signal_type,
            product_id=product_id,
            price=price,
            strategy=self.name,
            reason=candidate.reason,
            confidence=max(0.0, min(candidate.confidence, 100.0)),
            indicators=candidate.indicators,
            mode=self.mode,
            trade_amount=self._config.trade_amount,
        )

        # Flag before awaiting execution
        previous_position = state.position
        new_position = self._position_after(signal_type)
        state.position = new_position
        self._last_signal_price[product_id] = price

        logger.info(
            f"[{tag}] {signal_type.value.upper()} signal for {product_id} @ {price}: "
            f"{candidate.reason} (confidence={signal.confidence:.1f})"
        )
        self._record_signal(signal)

        trade = await self._execute_trade(signal)
        if trade is None and state.position is new_position:
            state.position = previous_position
            logger.info(
                f"[{tag}] Trade for {product_id} not executed, position restored "
                f"to {previous_position.value}"
            )

        return signal

    def _position_permits(self, state: ProductState, signal_type: SignalType) -> bool:
        """Suppress duplicate same-direction signals."""
        if signal_type == SignalType.BUY:
            return state.position != PositionState.LONG
        return state.position != PositionState.SHORT

    def _position_after(self, signal_type: SignalType) -> PositionState:
        if signal_type == SignalType.BUY:
            return PositionState.LONG
        return PositionState.SHORT

    # ------------------------------------------------------------------
    # Movement filter
    # ------------------------------------------------------------------

    def should_generate_crossover_signal(
        self,
        product_id: str,
        current_price: float,
        signal_type: SignalType,
    ) -> bool:
        """
        Check the minimum relative price move since the last signal.

        The first signal for a product is always allowed. Afterwards the
        signal passes only if |price - last| / last >= min_movement_percent.
        """
        last_price = self._last_signal_price.get(ProductId(product_id))
        tag = self.name.upper()

        if last_price is None:
            logger.debug(
                f"[{tag}] No previous signal price for {product_id}, "
                f"allowing first {signal_type.value.upper()} signal"
            )
            return True

        movement = abs(current_price - last_price) / last_price
        threshold = self._config.min_movement_percent

        if movement < threshold:
            logger.info(
                f"[{tag}] Movement too small for {signal_type.value.upper()} on {product_id}: "
                f"{movement * 100:.3f}% < {threshold * 100:.3f}%"
            )
            return False

        logger.debug(
            f"[{tag}] Movement sufficient for {signal_type.value.upper()} on {product_id}: "
            f"{movement * 100:.3f}%"
        )
        return True

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def _emit(self, event: str, payload: dict[str, Any]) -> None:
        try:
            self._event_sink.emit(event, payload)
        except Exception as e:
            logger.error(f"[{self.name.upper()}] Event sink error on '{event}': {e}")

    def _record_signal(self, signal: Signal) -> None:
        self._signals.append(signal)
        self._emit("signal", signal.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Trade execution
    # ------------------------------------------------------------------

    async def _execute_trade(self, signal: Signal) -> Trade | None:
        side = Side.BUY if signal.type == SignalType.BUY else Side.SELL

        if self.mode == StrategyMode.SIMULATION:
            trade = self._simulate_trade(signal, side)
        elif self.mode == StrategyMode.ACTIVE:
            trade = await self._execute_live_trade(signal, side)
        else:
            logger.info(
                f"[{self.name.upper()}] Trading is stopped, ignoring "
                f"{side.value} {signal.product_id}"
            )
            return None

        if trade is not None:
            self._trades.append(trade)
            self._emit("trade", trade.model_dump(mode="json"))
        return trade

    def _simulate_trade(self, signal: Signal, side: Side) -> Trade | None:
        """Record a hypothetical fill if the live portfolio could afford it.

        The portfolio snapshot is only read, never mutated.
        """
        amount = self._config.trade_amount
        notional = amount * signal.price
        fees = notional * self._config.fee_rate
        tag = self.name.upper()

        if self._portfolio is not None:
            portfolio = self._portfolio.get_portfolio()
            base, quote = split_product_id(signal.product_id)

            if side == Side.BUY:
                available = portfolio.get(quote, 0.0)
                if available < notional + fees:
                    logger.warning(
                        f"[{tag}] Simulated BUY rejected: insufficient {quote} "
                        f"(required {notional + fees:.2f}, available {available:.2f})"
                    )
                    return None
            else:
                position = self._ledger.get_position(signal.product_id)
                held = portfolio.get(base, 0.0) + (position.amount if position else 0.0)
                if held < amount:
                    logger.warning(
                        f"[{tag}] Simulated SELL rejected: insufficient {base} "
                        f"(required {amount}, available {held})"
                    )
                    return None

        trade = self._ledger.record_trade(
            signal.product_id,
            side,
            amount,
            signal.price,
            fees=fees,
            is_simulated=True,
            strategy=self.name,
        )
        logger.info(
            f"[{tag}] Trade simulated: {side.value} {amount} {signal.product_id} @ {signal.price}"
        )
        return trade

    async def _execute_live_trade(self, signal: Signal, side: Side) -> Trade | None:
        amount = self._config.trade_amount
        tag = self.name.upper()

        if self._executor is None:
            logger.error(
                f"[{tag}] Order executor not available, cannot {side.value} {signal.product_id}"
            )
            return None

        if side == Side.BUY:
            execute = self._executor.execute_buy_order
        else:
            execute = self._executor.execute_sell_order

        try:
            result = await asyncio.wait_for(
                execute(signal.product_id, amount),
                timeout=self._config.execution_timeout,
            )
        except asyncio.TimeoutError:
            result = ExecutionResult.failed(
                f"Execution timed out after {self._config.execution_timeout}s",
                ExecutionFailure.TIMEOUT,
            )
        except Exception as e:
            result = ExecutionResult.failed(str(e), ExecutionFailure.TRANSPORT)

        if not result.success:
            logger.warning(
                f"[{tag}] {side.value} {amount} {signal.product_id} failed "
                f"({result.failure.value if result.failure else 'unknown'}): {result.error}"
            )
            return None

        trade = self._ledger.record_trade(
            signal.product_id,
            side,
            amount,
            result.fill_price or signal.price,
            fees=result.fees,
            is_simulated=False,
            strategy=self.name,
            order_id=result.order_id,
        )
        logger.info(
            f"[{tag}] Trade executed: {side.value} {amount} {signal.product_id} "
            f"@ {trade.price} (order {trade.order_id})"
        )
        return trade

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def _indicator_snapshot(self, state: ProductState) -> dict[str, Any]:
        ...

    def get_indicators(self, product_id: str | None = None) -> dict[str, Any]:
        """Indicator values for one product, or for every tracked product."""
        parameters = self._config.model_dump(mode="json")
        if product_id is not None:
            state = self._states.get(ProductId(product_id))
            if state is None:
                return {"position": PositionState.NONE.value, "price_history_length": 0, **parameters}
            return {**self._indicator_snapshot(state), **parameters}

        return {
            "products": {
                pid: self._indicator_snapshot(state) for pid, state in self._states.items()
            },
            **parameters,
        }

    def get_signals(self) -> list[Signal]:
        return list(self._signals)

    def get_trades(self) -> list[Trade]:
        return list(self._trades)

    def _portfolio_value(self, portfolio: dict[str, float]) -> float:
        value = 0.0
        for currency, amount in portfolio.items():
            if amount <= 0:
                continue
            if currency in QUOTE_CURRENCIES:
                value += amount
                continue
            state = self._states.get(ProductId(f"{currency}-USD"))
            if state is not None and state.last_price is not None:
                value += amount * state.last_price
        return value

    def get_performance(self) -> dict[str, Any]:
        """Strategy trade counts plus the shared ledger summary."""
        trades = list(self._trades)
        portfolio = self._portfolio.get_portfolio() if self._portfolio else {}

        return {
            "strategy": self.name,
            "display_name": self.display_name,
            "mode": self.mode.value,
            "is_running": self._running,
            "parameters": self._config.model_dump(mode="json"),
            "total_trades": len(trades),
            "buy_trades": sum(1 for t in trades if t.side == Side.BUY),
            "sell_trades": sum(1 for t in trades if t.side == Side.SELL),
            "total_volume": sum(t.amount for t in trades),
            "recent_trades": [t.model_dump(mode="json") for t in trades[-RECENT_TRADES:]],
            "portfolio": dict(portfolio),
            "current_portfolio_value": round(self._portfolio_value(portfolio), 4),
            "summary": self._ledger.get_performance_summary().model_dump(mode="json"),
        }

    @abstractmethod
    def get_description(self) -> str:
        ...

    def _describe_config(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self._config.model_dump(mode="json").items())
