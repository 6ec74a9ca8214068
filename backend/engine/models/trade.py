"""Trade, position and execution-result models."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _trade_id() -> str:
    return uuid.uuid4().hex


class Side(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"


class Trade(BaseModel):
    """Executed or simulated trade recorded in the ledger."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_trade_id)
    timestamp: datetime = Field(default_factory=_utcnow)
    product_id: str
    side: Side
    amount: float
    price: float
    fees: float = 0.0
    is_simulated: bool = False
    realized_pnl: float | None = None  # SELL only
    strategy: str | None = None
    order_id: str | None = None

    @property
    def notional(self) -> float:
        return self.amount * self.price

    @property
    def is_win(self) -> bool:
        return self.realized_pnl is not None and self.realized_pnl > 0

    @property
    def is_loss(self) -> bool:
        return self.realized_pnl is not None and self.realized_pnl < 0


class Position(BaseModel):
    """Open long position in one product, held at weighted-average cost."""

    product_id: str
    amount: float = 0.0
    total_cost: float = 0.0

    @property
    def avg_price(self) -> float:
        if self.amount <= 0:
            return 0.0
        return self.total_cost / self.amount

    def unrealized_pnl(self, mark_price: float) -> float:
        return self.amount * mark_price - self.total_cost


class PerformanceSummary(BaseModel):
    """Snapshot of ledger performance for the current session."""

    model_config = ConfigDict(frozen=True)

    total_trades: int = 0
    buy_trades: int = 0
    sell_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0  # percent of closed (SELL) trades with pnl > 0
    gross_profit: float = 0.0
    gross_loss: float = 0.0
    total_fees: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    net_profit: float = 0.0
    max_drawdown: float = 0.0
    open_positions: dict[str, dict[str, float]] = Field(default_factory=dict)
    recent_trades: list[Trade] = Field(default_factory=list)


class ExecutionFailure(str, Enum):
    """Why an order did not execute."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    RISK_REJECTED = "risk_rejected"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


class ExecutionResult(BaseModel):
    """Result of an order-execution request. Never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    success: bool
    order: dict[str, Any] | None = None
    error: str | None = None
    failure: ExecutionFailure | None = None

    @classmethod
    def ok(cls, order: dict[str, Any]) -> "ExecutionResult":
        return cls(success=True, order=order)

    @classmethod
    def failed(cls, error: str, failure: ExecutionFailure) -> "ExecutionResult":
        return cls(success=False, error=error, failure=failure)

    @property
    def order_id(self) -> str | None:
        if not self.order:
            return None
        order_id = self.order.get("order_id") or self.order.get("id")
        return str(order_id) if order_id is not None else None

    @property
    def fill_price(self) -> float | None:
        if not self.order:
            return None
        price = self.order.get("average") or self.order.get("price")
        return float(price) if price else None

    @property
    def fees(self) -> float:
        if not self.order:
            return 0.0
        fee = self.order.get("fee")
        if isinstance(fee, dict):
            fee = fee.get("cost")
        return float(fee) if fee else 0.0
