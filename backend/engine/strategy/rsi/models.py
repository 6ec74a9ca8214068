"""RSI threshold strategy configuration and per-product state."""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import Field, model_validator

from engine.strategy.base import ProductState
from engine.strategy.base_config import BaseStrategyConfig

# Width of the band inside each threshold before the position resets to none
NEUTRAL_MARGIN = 10.0


class RsiZone(str, Enum):
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"
    OVERBOUGHT = "overbought"


class RsiConfig(BaseStrategyConfig):
    """Configuration for the RSI threshold strategy."""

    period: int = Field(default=14, ge=1)
    oversold_threshold: float = Field(default=30.0, gt=0, lt=100)
    overbought_threshold: float = Field(default=70.0, gt=0, lt=100)

    @model_validator(mode="after")
    def _validate_thresholds(self):
        if self.oversold_threshold >= self.overbought_threshold:
            raise ValueError(
                f"oversold_threshold ({self.oversold_threshold}) must be below "
                f"overbought_threshold ({self.overbought_threshold})"
            )
        low, high = self.neutral_band
        if low >= high:
            raise ValueError(
                f"thresholds {self.oversold_threshold}/{self.overbought_threshold} must be "
                f"more than {2 * NEUTRAL_MARGIN:g} apart to leave a neutral band"
            )
        return self

    @property
    def history_cap(self) -> int:
        return self.period * 2

    @property
    def neutral_band(self) -> tuple[float, float]:
        return (
            self.oversold_threshold + NEUTRAL_MARGIN,
            self.overbought_threshold - NEUTRAL_MARGIN,
        )


@dataclass
class RsiState(ProductState):
    # FIFO windows of the last `period` price changes (losses as absolute values)
    gains: list[float] = field(default_factory=list)
    losses: list[float] = field(default_factory=list)

    avg_gain: float | None = None
    avg_loss: float | None = None
    rsi: float | None = None
    zone: RsiZone | None = None
