"""SMA crossover strategy configuration and per-product state."""

from dataclasses import dataclass

from pydantic import Field

from engine.strategy.base import ProductState
from engine.strategy.base_config import BaseStrategyConfig


class SmaConfig(BaseStrategyConfig):
    """Configuration for the SMA crossover strategy."""

    period: int = Field(default=20, ge=1)

    @property
    def history_cap(self) -> int:
        return self.period * 2


@dataclass
class SmaState(ProductState):
    sma: float | None = None

    # Price and SMA as of the previous tick, for crossover detection
    prev_price: float | None = None
    prev_sma: float | None = None

    initial_buy_generated: bool = False
