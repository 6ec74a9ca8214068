"""Pre-trade risk checks for live orders."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Mapping

from engine.models import ExecutionFailure, split_product_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskCheck:
    """Outcome of a risk check. `failure` is set when not approved."""

    approved: bool
    reason: str | None = None
    failure: ExecutionFailure | None = None

    @classmethod
    def ok(cls) -> "RiskCheck":
        return cls(approved=True)

    @classmethod
    def reject(cls, reason: str, failure: ExecutionFailure) -> "RiskCheck":
        return cls(approved=False, reason=reason, failure=failure)


class RiskManager:
    """
    Order limits applied before anything reaches the exchange.

    - BUY notional may not exceed max_position_size (quote currency)
    - BUY needs enough quote balance, SELL enough base balance
    - Once the day's recorded losses reach max_position_size * risk_tolerance,
      further BUYs are rejected until the date changes
    """

    def __init__(
        self,
        max_position_size: float = 1000.0,
        risk_tolerance: float = 0.05,
        today: Callable[[], date] = date.today,
    ):
        self.max_position_size = max_position_size
        self.risk_tolerance = risk_tolerance
        self._today = today
        self.daily_loss = 0.0
        self._last_reset = today()

    @property
    def daily_loss_limit(self) -> float:
        return self.max_position_size * self.risk_tolerance

    def _reset_daily_loss_if_needed(self) -> None:
        today = self._today()
        if today != self._last_reset:
            logger.info(f"New trading day {today}, daily loss reset from {self.daily_loss:.2f}")
            self.daily_loss = 0.0
            self._last_reset = today

    def record_loss(self, amount: float) -> None:
        """Add a realized loss (positive number) to today's total."""
        self._reset_daily_loss_if_needed()
        self.daily_loss += abs(amount)

    def check_buy_order(
        self,
        product_id: str,
        amount: float,
        price: float,
        portfolio: Mapping[str, float],
    ) -> RiskCheck:
        self._reset_daily_loss_if_needed()
        _, quote = split_product_id(product_id)
        order_value = amount * price

        if order_value > self.max_position_size:
            return RiskCheck.reject(
                f"Order value ${order_value:.2f} exceeds max position size "
                f"${self.max_position_size:.2f}",
                ExecutionFailure.RISK_REJECTED,
            )

        available = portfolio.get(quote, 0.0)
        if available < order_value:
            return RiskCheck.reject(
                f"Insufficient funds. Required: ${order_value:.2f}, "
                f"Available: ${available:.2f}",
                ExecutionFailure.INSUFFICIENT_FUNDS,
            )

        if self.daily_loss >= self.daily_loss_limit:
            return RiskCheck.reject(
                f"Daily loss limit reached: ${self.daily_loss:.2f}",
                ExecutionFailure.RISK_REJECTED,
            )

        return RiskCheck.ok()

    def check_sell_order(
        self,
        product_id: str,
        amount: float,
        portfolio: Mapping[str, float],
    ) -> RiskCheck:
        self._reset_daily_loss_if_needed()
        base, _ = split_product_id(product_id)

        available = portfolio.get(base, 0.0)
        if available < amount:
            return RiskCheck.reject(
                f"Insufficient {base} balance. Required: {amount}, Available: {available}",
                ExecutionFailure.INSUFFICIENT_FUNDS,
            )

        return RiskCheck.ok()
