"""RSI threshold strategy implementation.

- RSI <= oversold threshold and not already long -> BUY
- RSI >= overbought threshold and not already short -> SELL
- RSI back inside (oversold + 10, overbought - 10) -> position resets to none
  (simulation and active only)

RSI is a simple average of the last `period` gains and losses, kept as
fixed-length FIFO windows per product and updated on every tick.

Outside trading modes the position never changes, so threshold events are
only reported when RSI enters a zone rather than on every tick inside it.

This module is pure business logic with no I/O dependencies.
"""

import logging
from typing import Any

from engine.indicators import rsi_from_window
from engine.models import CrossoverDirection, PositionState, PricePoint, ProductId
from engine.strategy.base import BaseStrategy, Candidate
from engine.strategy.kinds import StrategyKind
from engine.strategy.rsi.models import RsiConfig, RsiState, RsiZone

logger = logging.getLogger(__name__)


class RsiStrategy(BaseStrategy):
    """RSI oversold/overbought strategy."""

    kind = StrategyKind.RSI
    display_name = "RSI Strategy"
    config_class = RsiConfig

    _config: RsiConfig

    def _new_state(self) -> RsiState:
        return RsiState()

    # ------------------------------------------------------------------
    # Core logic
    # ------------------------------------------------------------------

    def _update_rsi(self, state: RsiState) -> None:
        period = self._config.period
        if len(state.gains) < period:
            state.avg_gain = state.avg_loss = state.rsi = None
            return

        state.avg_gain = sum(state.gains) / period
        state.avg_loss = sum(state.losses) / period
        state.rsi = rsi_from_window(state.gains, state.losses)

    def _classify(self, value: float) -> RsiZone:
        if value <= self._config.oversold_threshold:
            return RsiZone.OVERSOLD
        if value >= self._config.overbought_threshold:
            return RsiZone.OVERBOUGHT
        return RsiZone.NEUTRAL

    def _detect(
        self,
        product_id: ProductId,
        state: RsiState,
        point: PricePoint,
    ) -> Candidate | None:
        price = point.price
        config = self._config
        prev_price = state.last_price
        state.push_point(point, config.history_cap)

        if prev_price is None:
            return None

        change = price - prev_price
        state.gains.append(change if change > 0 else 0.0)
        state.losses.append(-change if change < 0 else 0.0)
        if len(state.gains) > config.period:
            del state.gains[:-config.period]
            del state.losses[:-config.period]

        self._update_rsi(state)
        value = state.rsi
        if value is None:
            return None

        logger.debug(f"[RSI] {product_id} RSI({config.period}) = {value:.2f}")

        previous_zone = state.zone
        state.zone = self._classify(value)
        entering = state.zone != previous_zone
        report = self.mode.is_trading or entering

        indicators = {
            "rsi": value,
            "avg_gain": state.avg_gain,
            "avg_loss": state.avg_loss,
            "period": config.period,
        }

        if state.zone == RsiZone.OVERSOLD and state.position != PositionState.LONG:
            if not report:
                return None
            return Candidate(
                direction=CrossoverDirection.BULLISH,
                reason=f"RSI Oversold - RSI: {value:.2f}",
                confidence=self.calculate_confidence(value, CrossoverDirection.BULLISH),
                indicators=indicators,
            )

        if state.zone == RsiZone.OVERBOUGHT and state.position != PositionState.SHORT:
            if not report:
                return None
            return Candidate(
                direction=CrossoverDirection.BEARISH,
                reason=f"RSI Overbought - RSI: {value:.2f}",
                confidence=self.calculate_confidence(value, CrossoverDirection.BEARISH),
                indicators=indicators,
            )

        low, high = config.neutral_band
        if (
            self.mode.is_trading
            and low < value < high
            and state.position != PositionState.NONE
        ):
            logger.info(
                f"[RSI] {product_id} RSI {value:.2f} back in neutral zone, "
                f"position {state.position.value} -> none"
            )
            state.position = PositionState.NONE

        return None

    def calculate_confidence(self, value: float, direction: CrossoverDirection) -> float:
        """Scale confidence by how far RSI is past the threshold, in [0, 100]."""
        config = self._config
        if direction == CrossoverDirection.BULLISH:
            degree = max(0.0, config.oversold_threshold - value)
            return min(degree / config.oversold_threshold * 100, 100.0)

        degree = max(0.0, value - config.overbought_threshold)
        return min(degree / (100 - config.overbought_threshold) * 100, 100.0)

    def _on_config_changed(self, old: RsiConfig, new: RsiConfig) -> None:
        if old.period == new.period:
            return

        for state in self._states.values():
            state.trim(new.history_cap)
            del state.gains[:-new.period]
            del state.losses[:-new.period]
            self._update_rsi(state)
            state.zone = self._classify(state.rsi) if state.rsi is not None else None

        logger.info(f"[RSI] Period changed {old.period} -> {new.period}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _indicator_snapshot(self, state: RsiState) -> dict[str, Any]:
        return {
            "rsi": state.rsi,
            "avg_gain": state.avg_gain,
            "avg_loss": state.avg_loss,
            "zone": state.zone.value if state.zone else None,
            "position": state.position.value,
            "price_history_length": len(state.history),
        }

    def get_description(self) -> str:
        config = self._config
        return (
            f"RSI Strategy using {config.period}-period RSI with oversold threshold "
            f"at {config.oversold_threshold} and overbought threshold at "
            f"{config.overbought_threshold}. Generates buy signals when oversold and "
            f"sell signals when overbought."
        )
