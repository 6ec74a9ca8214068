"""MACD crossover strategy implementation.

Histogram sign change, per product:
- histogram crosses from <= 0 to > 0 (MACD above signal line) -> BUY
- histogram crosses from >= 0 to < 0 (MACD below signal line) -> SELL

Both EMAs are seeded with the SMA of their first `period` prices and then
advanced one price at a time. The signal line is seeded the same way from
the MACD line history.

This module is pure business logic with no I/O dependencies.
"""

import logging
from typing import Any

from engine.indicators import ema, sma
from engine.models import CrossoverDirection, PricePoint, ProductId
from engine.strategy.base import BaseStrategy, Candidate
from engine.strategy.kinds import StrategyKind
from engine.strategy.macd.models import MacdConfig, MacdState

logger = logging.getLogger(__name__)

# Number of recent MACD/signal gaps averaged for confidence
CONFIDENCE_WINDOW = 5


def _append_capped(values: list[float], value: float, cap: int) -> None:
    values.append(value)
    if len(values) > cap:
        del values[:-cap]


class MacdStrategy(BaseStrategy):
    """MACD histogram crossover strategy."""

    kind = StrategyKind.MACD
    display_name = "MACD Strategy"
    config_class = MacdConfig

    _config: MacdConfig

    def _new_state(self) -> MacdState:
        return MacdState()

    # ------------------------------------------------------------------
    # Core logic
    # ------------------------------------------------------------------

    def _update_macd(self, state: MacdState) -> bool:
        """Advance EMAs, MACD and signal line by the newest price.

        Returns True once a histogram value is available.
        """
        config = self._config
        history = state.history

        state.fast_ema = ema(history, config.fast_period, state.fast_ema)
        state.slow_ema = ema(history, config.slow_period, state.slow_ema)
        if state.fast_ema is None or state.slow_ema is None:
            return False

        state.macd_line = state.fast_ema - state.slow_ema
        _append_capped(state.macd_history, state.macd_line, config.macd_history_cap)

        if state.signal_line is None:
            state.signal_line = sma(state.macd_history, config.signal_period)
        else:
            state.signal_line = ema(
                state.macd_history, config.signal_period, state.signal_line
            )
        if state.signal_line is None:
            return False

        _append_capped(state.signal_history, state.signal_line, config.signal_history_cap)

        state.prev_histogram = state.histogram
        state.histogram = state.macd_line - state.signal_line
        return True

    def _detect(
        self,
        product_id: ProductId,
        state: MacdState,
        point: PricePoint,
    ) -> Candidate | None:
        state.push_point(point, self._config.history_cap)

        if not self._update_macd(state):
            logger.debug(
                f"[MACD] Not enough data for {product_id}: "
                f"{len(state.history)}/{self._config.slow_period} prices"
            )
            return None

        histogram, prev_histogram = state.histogram, state.prev_histogram
        logger.debug(
            f"[MACD] {product_id} MACD={state.macd_line:.6f} "
            f"signal={state.signal_line:.6f} histogram={histogram:.6f}"
        )

        if prev_histogram is None:
            return None

        if prev_histogram <= 0 < histogram:
            direction = CrossoverDirection.BULLISH
            reason = "MACD crossed above signal line"
        elif prev_histogram >= 0 > histogram:
            direction = CrossoverDirection.BEARISH
            reason = "MACD crossed below signal line"
        else:
            return None

        logger.info(
            f"[MACD] {direction.signal_type.value.upper()} crossover for {product_id}: "
            f"histogram {prev_histogram:.6f} -> {histogram:.6f} "
            f"(position {state.position.value})"
        )
        return Candidate(
            direction=direction,
            reason=reason,
            confidence=self.calculate_confidence(state),
            indicators={
                "macd": state.macd_line,
                "signal": state.signal_line,
                "histogram": histogram,
                "fast_ema": state.fast_ema,
                "slow_ema": state.slow_ema,
            },
        )

    def calculate_confidence(self, state: MacdState) -> float:
        """Current histogram size relative to the recent average MACD/signal gap."""
        recent_signal = state.signal_history[-CONFIDENCE_WINDOW:]
        recent_macd = state.macd_history[-len(recent_signal):] if recent_signal else []
        gaps = [abs(m - s) for m, s in zip(recent_macd, recent_signal)]

        average_gap = sum(gaps) / len(gaps) if gaps else 0.0
        if average_gap == 0:
            return 50.0
        return min(abs(state.histogram or 0.0) / average_gap * 50, 100.0)

    def _on_config_changed(self, old: MacdConfig, new: MacdConfig) -> None:
        if old.periods == new.periods:
            return

        for state in self._states.values():
            state.trim(new.history_cap)
            state.reset_indicators()

        logger.info(
            f"[MACD] Periods changed {old.periods} -> {new.periods}, "
            f"indicator state reset"
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _indicator_snapshot(self, state: MacdState) -> dict[str, Any]:
        return {
            "macd": state.macd_line,
            "signal": state.signal_line,
            "histogram": state.histogram,
            "fast_ema": state.fast_ema,
            "slow_ema": state.slow_ema,
            "position": state.position.value,
            "price_history_length": len(state.history),
        }

    def get_description(self) -> str:
        config = self._config
        return (
            f"MACD Strategy using {config.fast_period}/{config.slow_period}/"
            f"{config.signal_period} periods. Buys when the MACD line crosses above "
            f"the signal line, sells when it crosses below."
        )
