"""Trade ledger: positions, realized/unrealized P&L and session performance.

One ledger is shared by every strategy. Positions are long-only and held
at weighted-average cost; a SELL realizes P&L against that average, which
is how FIFO cost basis is approximated here (no per-lot tracking).

Session totals (realized P&L, fees, win/loss counts, drawdown) are kept as
running values so they stay correct after old trades are evicted from the
bounded trade list.
"""

import logging
from collections import deque
from typing import Mapping

from engine.models import PerformanceSummary, Position, Side, Trade

logger = logging.getLogger(__name__)

MAX_TRADES = 1000

# Position dust below this amount is treated as closed
_AMOUNT_EPSILON = 1e-12


class TradeLedger:
    """Record trades and derive positions and performance from them."""

    def __init__(self, max_trades: int = MAX_TRADES):
        self.max_trades = max_trades
        self._trades: deque[Trade] = deque(maxlen=max_trades)
        self._positions: dict[str, Position] = {}
        self._last_prices: dict[str, float] = {}
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total_trades = 0
        self._buy_trades = 0
        self._sell_trades = 0
        self._winning_trades = 0
        self._losing_trades = 0
        self._gross_profit = 0.0
        self._gross_loss = 0.0
        self._total_fees = 0.0
        self._realized_pnl = 0.0

        # Cumulative equity curve: realized P&L minus fees after each trade
        self._equity = 0.0
        self._peak_equity = 0.0
        self._max_drawdown = 0.0

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_trade(
        self,
        product_id: str,
        side: Side,
        amount: float,
        price: float,
        fees: float = 0.0,
        is_simulated: bool = False,
        strategy: str | None = None,
        order_id: str | None = None,
    ) -> Trade:
        """
        Append a trade and update the product position.

        BUY adds to the position at weighted-average cost. SELL realizes
        sold_amount * (price - avg_price) and reduces the position; selling
        more than is held only realizes against the held amount.

        Args:
            product_id: Product traded (e.g. "BTC-USD")
            side: BUY or SELL
            amount: Base-currency amount, > 0
            price: Fill price, > 0
            fees: Fees paid in quote currency, >= 0
            is_simulated: True for simulation-mode fills
            strategy: Name of the strategy that produced the trade
            order_id: Exchange order id, if any

        Returns:
            The recorded Trade

        Raises:
            ValueError: If amount/price are not positive or fees are negative
        """
        if amount <= 0:
            raise ValueError(f"Trade amount must be positive, got {amount}")
        if price <= 0:
            raise ValueError(f"Trade price must be positive, got {price}")
        if fees < 0:
            raise ValueError(f"Trade fees cannot be negative, got {fees}")

        side = Side(side)
        realized: float | None = None

        if side == Side.BUY:
            self._apply_buy(product_id, amount, price)
            self._buy_trades += 1
        else:
            realized = self._apply_sell(product_id, amount, price)
            self._sell_trades += 1
            self._realized_pnl += realized
            if realized > 0:
                self._winning_trades += 1
                self._gross_profit += realized
            elif realized < 0:
                self._losing_trades += 1
                self._gross_loss += -realized

        self._total_trades += 1
        self._total_fees += fees
        self._last_prices[product_id] = price
        self._update_drawdown((realized or 0.0) - fees)

        trade = Trade(
            product_id=product_id,
            side=side,
            amount=amount,
            price=price,
            fees=fees,
            is_simulated=is_simulated,
            realized_pnl=realized,
            strategy=strategy,
            order_id=order_id,
        )
        self._trades.append(trade)

        logger.info(
            f"Ledger {side.value} {amount} {product_id} @ {price} "
            f"fees={fees} realized={realized} simulated={is_simulated}"
        )
        return trade

    def _apply_buy(self, product_id: str, amount: float, price: float) -> None:
        position = self._positions.get(product_id)
        if position is None:
            position = Position(product_id=product_id)
            self._positions[product_id] = position

        position.amount += amount
        position.total_cost += amount * price

    def _apply_sell(self, product_id: str, amount: float, price: float) -> float:
        position = self._positions.get(product_id)
        held = position.amount if position else 0.0
        sold = min(amount, held)

        if sold <= 0:
            logger.warning(
                f"SELL {amount} {product_id} with no open position, no P&L realized"
            )
            return 0.0

        if amount > held:
            logger.warning(
                f"SELL {amount} {product_id} exceeds position {held}, "
                f"realizing against held amount only"
            )

        avg_price = position.avg_price
        realized = sold * (price - avg_price)

        position.amount -= sold
        if position.amount <= _AMOUNT_EPSILON:
            del self._positions[product_id]
        else:
            position.total_cost = position.amount * avg_price

        return realized

    def _update_drawdown(self, equity_change: float) -> None:
        self._equity += equity_change
        if self._equity > self._peak_equity:
            self._peak_equity = self._equity
        drawdown = self._peak_equity - self._equity
        if drawdown > self._max_drawdown:
            self._max_drawdown = drawdown

    def mark_price(self, product_id: str, price: float) -> None:
        """Remember the latest price of a product for unrealized P&L."""
        self._last_prices[product_id] = price

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_position(self, product_id: str) -> Position | None:
        position = self._positions.get(product_id)
        return position.model_copy() if position else None

    def get_positions(self) -> dict[str, Position]:
        return {pid: pos.model_copy() for pid, pos in self._positions.items()}

    def get_trades(self, limit: int | None = None) -> list[Trade]:
        trades = list(self._trades)
        if limit is not None:
            return trades[-limit:] if limit > 0 else []
        return trades

    @property
    def realized_pnl(self) -> float:
        return self._realized_pnl

    @property
    def max_drawdown(self) -> float:
        return self._max_drawdown

    def unrealized_pnl(self, prices: Mapping[str, float] | None = None) -> float:
        """Mark open positions to the latest known (or given) prices."""
        total = 0.0
        for product_id, position in self._positions.items():
            mark = self._mark_for(product_id, position, prices)
            total += position.unrealized_pnl(mark)
        return total

    def _mark_for(
        self,
        product_id: str,
        position: Position,
        prices: Mapping[str, float] | None,
    ) -> float:
        if prices and product_id in prices:
            return prices[product_id]
        return self._last_prices.get(product_id, position.avg_price)

    def get_performance_summary(
        self,
        recent: int = 10,
        prices: Mapping[str, float] | None = None,
    ) -> PerformanceSummary:
        """
        Build a performance snapshot for the current session.

        Args:
            recent: Number of most recent trades to include
            prices: Optional mark prices overriding the last known prices

        Returns:
            PerformanceSummary
        """
        open_positions: dict[str, dict[str, float]] = {}
        unrealized = 0.0
        for product_id, position in self._positions.items():
            mark = self._mark_for(product_id, position, prices)
            pnl = position.unrealized_pnl(mark)
            unrealized += pnl
            open_positions[product_id] = {
                "amount": position.amount,
                "avg_price": position.avg_price,
                "total_cost": position.total_cost,
                "mark_price": mark,
                "unrealized_pnl": pnl,
            }

        closed = self._winning_trades + self._losing_trades
        win_rate = (self._winning_trades / closed * 100) if closed > 0 else 0.0

        return PerformanceSummary(
            total_trades=self._total_trades,
            buy_trades=self._buy_trades,
            sell_trades=self._sell_trades,
            winning_trades=self._winning_trades,
            losing_trades=self._losing_trades,
            win_rate=win_rate,
            gross_profit=self._gross_profit,
            gross_loss=self._gross_loss,
            total_fees=self._total_fees,
            realized_pnl=self._realized_pnl,
            unrealized_pnl=unrealized,
            net_profit=self._realized_pnl + unrealized - self._total_fees,
            max_drawdown=self._max_drawdown,
            open_positions=open_positions,
            recent_trades=self.get_trades(recent),
        )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset_performance_data(self) -> None:
        """Clear trades, positions and counters for a fresh session."""
        self._trades.clear()
        self._positions.clear()
        self._last_prices.clear()
        self._reset_counters()
        logger.info("Trade ledger reset for new session")
