"""Trading engine: order execution and portfolio snapshot for live strategies.

Implements the OrderExecutor and PortfolioProvider interfaces the
strategies are built against. Every failure path (risk rejection, missing
price, exchange error) is returned as an ExecutionResult; nothing raises
out of execute_buy_order / execute_sell_order.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from engine.errors import ExecutionError
from engine.ledger import TradeLedger
from engine.models import (
    ExecutionFailure,
    ExecutionResult,
    PriceTick,
    Side,
    split_product_id,
)
from engine.strategy import EventSink, NullEventSink
from engine.strategy.base import QUOTE_CURRENCIES
from trader.services.order_service import ExchangeClient
from trader.services.risk_manager import RiskManager

logger = logging.getLogger(__name__)


class TradingEngine:
    """Routes strategy orders to an exchange client after risk checks."""

    def __init__(
        self,
        exchange: ExchangeClient,
        ledger: TradeLedger | None = None,
        risk_manager: RiskManager | None = None,
        event_sink: EventSink | None = None,
    ):
        self._exchange = exchange
        self.ledger = ledger or TradeLedger()
        self.risk_manager = risk_manager or RiskManager()
        self._event_sink: EventSink = event_sink or NullEventSink()

        self._portfolio: dict[str, float] = {}
        self._last_prices: dict[str, float] = {}
        self._active_orders: dict[str, dict[str, Any]] = {}
        self.trading_enabled = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load the portfolio and enable order routing."""
        await self.load_portfolio()
        self.trading_enabled = True
        logger.info("Trading engine initialized")

    async def stop(self) -> None:
        self.trading_enabled = False
        await self._exchange.close()
        logger.info("Trading engine stopped")

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    async def load_portfolio(self) -> dict[str, float]:
        """Replace the snapshot with the exchange's current balances.

        On failure the previous snapshot is kept.
        """
        try:
            balances = await self._exchange.fetch_balances()
        except Exception as e:
            logger.error(f"Error loading portfolio: {e}")
            return self.get_portfolio()

        self._portfolio = dict(balances)
        logger.info(
            "Portfolio loaded: "
            + ", ".join(f"{c}: {a}" for c, a in sorted(self._portfolio.items()))
        )
        return self.get_portfolio()

    async def sync_portfolio(self) -> dict[str, float]:
        """Reload balances and publish a "portfolio-update" event."""
        portfolio = await self.load_portfolio()
        try:
            self._event_sink.emit(
                "portfolio-update",
                {
                    "portfolio": portfolio,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                },
            )
        except Exception as e:
            logger.error(f"Event sink error on 'portfolio-update': {e}")
        return portfolio

    def get_portfolio(self) -> dict[str, float]:
        return dict(self._portfolio)

    def get_available_products(self) -> list[str]:
        """USD products for every non-quote currency in the portfolio."""
        return [
            f"{currency}-USD"
            for currency in sorted(self._portfolio)
            if currency not in QUOTE_CURRENCIES
        ]

    def _apply_fill(
        self,
        product_id: str,
        side: Side,
        amount: float,
        fill_price: float,
        fee: float,
    ) -> None:
        base, quote = split_product_id(product_id)
        notional = amount * fill_price

        if side == Side.BUY:
            self._portfolio[quote] = self._portfolio.get(quote, 0.0) - notional - fee
            self._portfolio[base] = self._portfolio.get(base, 0.0) + amount
        else:
            self._portfolio[base] = self._portfolio.get(base, 0.0) - amount
            self._portfolio[quote] = self._portfolio.get(quote, 0.0) + notional - fee

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def update_price(self, tick: PriceTick) -> None:
        """Remember the latest price per product for order valuation."""
        self._last_prices[tick.product_id] = tick.price
        self.ledger.mark_price(tick.product_id, tick.price)

    def get_price(self, product_id: str) -> float | None:
        return self._last_prices.get(product_id)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def execute_buy_order(self, product_id: str, amount: float) -> ExecutionResult:
        return await self._execute(product_id, Side.BUY, amount)

    async def execute_sell_order(self, product_id: str, amount: float) -> ExecutionResult:
        return await self._execute(product_id, Side.SELL, amount)

    async def _execute(self, product_id: str, side: Side, amount: float) -> ExecutionResult:
        if not self.trading_enabled:
            return ExecutionResult.failed(
                "Trading engine is not initialized", ExecutionFailure.UNAVAILABLE
            )

        price = self._last_prices.get(product_id)
        if price is None:
            return ExecutionResult.failed(
                f"No market price for {product_id}", ExecutionFailure.UNAVAILABLE
            )

        if side == Side.BUY:
            check = self.risk_manager.check_buy_order(product_id, amount, price, self._portfolio)
        else:
            check = self.risk_manager.check_sell_order(product_id, amount, self._portfolio)
        if not check.approved:
            logger.warning(f"{side.value} order rejected by risk manager: {check.reason}")
            return ExecutionResult.failed(check.reason or "Rejected", check.failure)

        try:
            order = await self._exchange.place_market_order(product_id, side, amount, price)
        except ExecutionError as e:
            logger.error(f"Error executing {side.value} order for {product_id}: {e}")
            return ExecutionResult.failed(str(e), ExecutionFailure.TRANSPORT)
        except Exception as e:
            logger.exception(f"Unexpected error executing {side.value} order for {product_id}")
            return ExecutionResult.failed(str(e), ExecutionFailure.TRANSPORT)

        result = ExecutionResult.ok(order)
        if result.order_id:
            self._active_orders[result.order_id] = {
                **order,
                "product_id": product_id,
                "type": side.value.lower(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

        fill_price = result.fill_price or price
        if side == Side.SELL:
            self._record_sell_loss(product_id, amount, fill_price)
        self._apply_fill(product_id, side, amount, fill_price, result.fees)

        logger.info(
            f"{side.value} order executed: {amount} {product_id} at "
            f"{fill_price} (order {result.order_id})"
        )
        return result

    def _record_sell_loss(self, product_id: str, amount: float, fill_price: float) -> None:
        position = self.ledger.get_position(product_id)
        if position is None or fill_price >= position.avg_price:
            return
        loss = (position.avg_price - fill_price) * min(amount, position.amount)
        self.risk_manager.record_loss(loss)
        logger.info(
            f"Loss of {loss:.2f} on {product_id} recorded, daily loss "
            f"{self.risk_manager.daily_loss:.2f}/{self.risk_manager.daily_loss_limit:.2f}"
        )

    async def cancel_order(self, order_id: str) -> ExecutionResult:
        order = self._active_orders.get(order_id)
        product_id = order.get("product_id") if order else None
        try:
            await self._exchange.cancel_order(order_id, product_id)
        except Exception as e:
            logger.error(f"Error cancelling order {order_id}: {e}")
            return ExecutionResult.failed(str(e), ExecutionFailure.TRANSPORT)

        self._active_orders.pop(order_id, None)
        logger.info(f"Order cancelled: {order_id}")
        return ExecutionResult.ok({"id": order_id, "status": "canceled"})

    def get_active_orders(self) -> list[dict[str, Any]]:
        return list(self._active_orders.values())

    # ------------------------------------------------------------------
    # Performance
    # ------------------------------------------------------------------

    def reset_performance_data(self) -> None:
        self.ledger.reset_performance_data()
        logger.info("Performance data reset for new session")
