"""Signal and strategy-state models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StrategyMode(str, Enum):
    """Trading mode of a strategy instance."""

    STOPPED = "stopped"
    SIMULATION = "simulation"
    ACTIVE = "active"

    @property
    def is_trading(self) -> bool:
        """True for modes that emit trade signals and execute trades."""
        return self in (StrategyMode.SIMULATION, StrategyMode.ACTIVE)


class PositionState(str, Enum):
    """Strategy-side view of a product position."""

    NONE = "none"
    LONG = "long"
    SHORT = "short"


class SignalType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class CrossoverDirection(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"

    @property
    def signal_type(self) -> SignalType:
        return SignalType.BUY if self is CrossoverDirection.BULLISH else SignalType.SELL


class Signal(BaseModel):
    """Trade signal emitted by a strategy."""

    model_config = ConfigDict(frozen=True)

    type: SignalType
    product_id: str
    price: float
    strategy: str
    reason: str = ""
    confidence: float = Field(default=100.0, ge=0, le=100)
    indicators: dict[str, Any] = Field(default_factory=dict)
    mode: StrategyMode = StrategyMode.SIMULATION
    trade_amount: float = 0.0
    timestamp: datetime = Field(default_factory=_utcnow)


class CrossoverEvent(BaseModel):
    """Visualization-only crossover marker, emitted in every mode."""

    model_config = ConfigDict(frozen=True)

    strategy: str
    product_id: str
    direction: CrossoverDirection
    price: float
    indicators: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)
