"""MACD crossover strategy configuration and per-product state."""

from dataclasses import dataclass, field

from pydantic import Field, model_validator

from engine.strategy.base import ProductState
from engine.strategy.base_config import BaseStrategyConfig


class MacdConfig(BaseStrategyConfig):
    """Configuration for the MACD crossover strategy."""

    fast_period: int = Field(default=12, ge=1)
    slow_period: int = Field(default=26, ge=2)
    signal_period: int = Field(default=9, ge=1)

    @model_validator(mode="after")
    def _validate_periods(self):
        if self.fast_period >= self.slow_period:
            raise ValueError(
                f"fast_period ({self.fast_period}) must be below "
                f"slow_period ({self.slow_period})"
            )
        return self

    @property
    def history_cap(self) -> int:
        return 3 * max(self.fast_period, self.slow_period)

    @property
    def macd_history_cap(self) -> int:
        return 3 * self.signal_period

    @property
    def signal_history_cap(self) -> int:
        return 2 * self.signal_period

    @property
    def periods(self) -> tuple[int, int, int]:
        return self.fast_period, self.slow_period, self.signal_period


@dataclass
class MacdState(ProductState):
    fast_ema: float | None = None
    slow_ema: float | None = None

    macd_line: float | None = None
    signal_line: float | None = None
    histogram: float | None = None
    prev_histogram: float | None = None

    macd_history: list[float] = field(default_factory=list)
    signal_history: list[float] = field(default_factory=list)

    def reset_indicators(self) -> None:
        self.fast_ema = self.slow_ema = None
        self.macd_line = self.signal_line = None
        self.histogram = self.prev_histogram = None
        self.macd_history.clear()
        self.signal_history.clear()
