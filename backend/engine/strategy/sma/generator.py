"""SMA crossover strategy implementation.

Price-vs-SMA crossover, per product:
- Price crosses above its SMA -> BUY
- Price crosses below its SMA -> SELL

The strategy is long-only: a SELL closes a long, and is suppressed when
nothing is held.

Initial entry: on the first tick at which a product's SMA becomes
available, a price already above the SMA counts as a bullish crossover,
at most once per product per session.

This module is pure business logic with no I/O dependencies.
"""

import logging
from typing import Any

from engine.indicators import sma
from engine.models import (
    CrossoverDirection,
    PositionState,
    PricePoint,
    ProductId,
    SignalType,
)
from engine.strategy.base import BaseStrategy, Candidate, ProductState
from engine.strategy.kinds import StrategyKind
from engine.strategy.sma.models import SmaConfig, SmaState

logger = logging.getLogger(__name__)


class SmaStrategy(BaseStrategy):
    """Simple Moving Average crossover strategy."""

    kind = StrategyKind.SMA
    display_name = "Simple Moving Average"
    config_class = SmaConfig

    _config: SmaConfig

    @property
    def period(self) -> int:
        return self._config.period

    def _new_state(self) -> SmaState:
        return SmaState()

    def _reset_session_flags(self, state: ProductState) -> None:
        state.initial_buy_generated = False

    # ------------------------------------------------------------------
    # Core logic
    # ------------------------------------------------------------------

    def _detect(
        self,
        product_id: ProductId,
        state: SmaState,
        point: PricePoint,
    ) -> Candidate | None:
        price = point.price
        period = self.period
        state.push_point(point, self._config.history_cap)

        sma_value = sma(state.history, period)
        prev_price, prev_sma = state.prev_price, state.prev_sma

        state.sma = sma_value
        state.prev_price = price
        state.prev_sma = sma_value

        if sma_value is None:
            logger.debug(
                f"[SMA] Not enough data for {product_id}: "
                f"{len(state.history)}/{period} prices"
            )
            return None

        logger.debug(f"[SMA] {product_id} SMA({period}) = {sma_value:.6f}")
        indicators = {"sma": sma_value, "period": period}

        if prev_price is None or prev_sma is None:
            if (
                self.mode.is_trading
                and not state.initial_buy_generated
                and price > sma_value
            ):
                state.initial_buy_generated = True
                logger.info(
                    f"[SMA] Initial entry for {product_id}: price {price} above "
                    f"SMA {sma_value:.2f}"
                )
                return Candidate(
                    direction=CrossoverDirection.BULLISH,
                    reason=f"Initial entry: price above {period}-period SMA",
                    confidence=100.0,
                    indicators=indicators,
                )
            return None

        if prev_price <= prev_sma and price > sma_value:
            if self.mode.is_trading:
                state.initial_buy_generated = True
            logger.info(
                f"[SMA] BUY crossover for {product_id}: price {price} crossed above "
                f"SMA {sma_value:.2f} (position {state.position.value})"
            )
            return Candidate(
                direction=CrossoverDirection.BULLISH,
                reason="Price crossed above SMA",
                confidence=100.0,
                indicators=indicators,
            )

        if prev_price >= prev_sma and price < sma_value:
            logger.info(
                f"[SMA] SELL crossover for {product_id}: price {price} crossed below "
                f"SMA {sma_value:.2f} (position {state.position.value})"
            )
            return Candidate(
                direction=CrossoverDirection.BEARISH,
                reason="Price crossed below SMA",
                confidence=100.0,
                indicators=indicators,
            )

        return None

    def _position_permits(self, state: ProductState, signal_type: SignalType) -> bool:
        if signal_type == SignalType.BUY:
            return state.position != PositionState.LONG
        return state.position == PositionState.LONG

    def _position_after(self, signal_type: SignalType) -> PositionState:
        if signal_type == SignalType.BUY:
            return PositionState.LONG
        return PositionState.NONE

    def _on_config_changed(self, old: SmaConfig, new: SmaConfig) -> None:
        if old.period == new.period:
            return

        # Re-derive from the retained history so a period change does not
        # look like a crossover on the next tick
        for state in self._states.values():
            state.trim(new.history_cap)
            state.sma = sma(state.history, new.period)
            state.prev_sma = state.sma
            state.prev_price = state.last_price

        logger.info(f"[SMA] Period changed {old.period} -> {new.period}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _indicator_snapshot(self, state: SmaState) -> dict[str, Any]:
        return {
            "sma": state.sma,
            "position": state.position.value,
            "price_history_length": len(state.history),
            "initial_buy_generated": state.initial_buy_generated,
        }

    def get_description(self) -> str:
        return (
            f"Simple Moving Average strategy using {self.period}-period SMA. "
            f"Buys when price crosses above SMA, sells when below."
        )
