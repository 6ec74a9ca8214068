"""Exchange access: ccxt-backed live client and an in-memory paper exchange."""

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

import ccxt.async_support as ccxt

from engine.errors import ExecutionError
from engine.models import Side, split_product_id

logger = logging.getLogger(__name__)


def to_symbol(product_id: str) -> str:
    """Convert a product id ("BTC-USD") to a ccxt symbol ("BTC/USD")."""
    base, quote = split_product_id(product_id)
    return f"{base}/{quote}"


@runtime_checkable
class ExchangeClient(Protocol):
    """What the trading engine needs from an exchange.

    Implementations raise ExecutionError on transport or exchange errors.
    """

    async def fetch_balances(self) -> dict[str, float]:
        ...

    async def place_market_order(
        self,
        product_id: str,
        side: Side,
        amount: float,
        price: float | None = None,
    ) -> dict[str, Any]:
        ...

    async def cancel_order(self, order_id: str, product_id: str | None = None) -> None:
        ...

    async def close(self) -> None:
        ...


class CcxtExchangeClient:
    """
    Spot exchange client via ccxt (Coinbase by default).

    Supports:
    - Total balances per currency
    - Market orders
    - Order cancellation
    """

    def __init__(
        self,
        exchange_id: str = "coinbase",
        api_key: str = "",
        api_secret: str = "",
        sandbox: bool = False,
    ):
        """
        Initialize exchange client.

        Args:
            exchange_id: ccxt exchange id
            api_key: Exchange API key
            api_secret: Exchange API secret
            sandbox: Use the exchange sandbox, where supported
        """
        self._exchange_id = exchange_id
        self._api_key = api_key
        self._api_secret = api_secret
        self._sandbox = sandbox
        self._exchange: ccxt.Exchange | None = None

    async def connect(self) -> None:
        """Initialize connection to exchange."""
        if self._exchange:
            return

        exchange_class = getattr(ccxt, self._exchange_id, None)
        if exchange_class is None:
            raise ExecutionError(f"Unknown ccxt exchange '{self._exchange_id}'")

        self._exchange = exchange_class({
            "apiKey": self._api_key,
            "secret": self._api_secret,
            "enableRateLimit": True,
        })
        if self._sandbox:
            self._exchange.set_sandbox_mode(True)
            logger.info(f"{self._exchange_id}: sandbox mode enabled")
        else:
            logger.warning(f"Connected to {self._exchange_id} PRODUCTION - USE WITH CAUTION")

        try:
            await self._exchange.load_markets()
        except ccxt.BaseError as e:
            raise ExecutionError(f"Failed to load markets: {e}") from e
        logger.info(f"Loaded {len(self._exchange.markets)} markets")

    async def close(self) -> None:
        """Close exchange connection."""
        if self._exchange:
            await self._exchange.close()
            self._exchange = None

    async def fetch_balances(self) -> dict[str, float]:
        """Total (free + held) balance per currency, zero balances omitted."""
        if not self._exchange:
            await self.connect()

        try:
            balance = await self._exchange.fetch_balance()
        except ccxt.BaseError as e:
            raise ExecutionError(f"Failed to fetch balances: {e}") from e

        totals = balance.get("total") or {}
        return {
            currency: float(amount)
            for currency, amount in totals.items()
            if amount
        }

    async def place_market_order(
        self,
        product_id: str,
        side: Side,
        amount: float,
        price: float | None = None,
    ) -> dict[str, Any]:
        """
        Place a market order.

        Args:
            product_id: Product (e.g., "BTC-USD")
            side: Buy or sell
            amount: Base-currency quantity
            price: Reference price, used by exchanges that size market
                buys in quote currency

        Returns:
            ccxt order structure
        """
        if not self._exchange:
            await self.connect()

        symbol = to_symbol(product_id)
        logger.info(f"Placing {side.value} market order: {symbol} qty={amount}")
        try:
            order = await self._exchange.create_order(
                symbol=symbol,
                type="market",
                side=side.value.lower(),
                amount=amount,
                price=price,
            )
        except ccxt.InsufficientFunds as e:
            raise ExecutionError(f"Insufficient funds: {e}") from e
        except ccxt.BaseError as e:
            raise ExecutionError(f"Order failed: {e}") from e

        logger.info(f"Order placed: {order['id']} status={order.get('status')}")
        return order

    async def cancel_order(self, order_id: str, product_id: str | None = None) -> None:
        if not self._exchange:
            await self.connect()

        symbol = to_symbol(product_id) if product_id else None
        try:
            await self._exchange.cancel_order(order_id, symbol)
        except ccxt.BaseError as e:
            raise ExecutionError(f"Cancel failed for {order_id}: {e}") from e
        logger.info(f"Order cancelled: {order_id}")


class PaperExchangeClient:
    """
    In-memory exchange for replays and tests.

    Market orders fill immediately at the last price seen for the product
    (or the reference price passed in) and move balances accordingly.
    """

    def __init__(
        self,
        balances: dict[str, float] | None = None,
        fee_rate: float = 0.0,
    ):
        self.balances: dict[str, float] = dict(balances or {})
        self.fee_rate = fee_rate
        self.orders: dict[str, dict[str, Any]] = {}
        self._last_prices: dict[str, float] = {}
        self._ids = itertools.count(1)

    def update_price(self, product_id: str, price: float) -> None:
        self._last_prices[product_id] = price

    async def fetch_balances(self) -> dict[str, float]:
        return {c: a for c, a in self.balances.items() if a}

    async def place_market_order(
        self,
        product_id: str,
        side: Side,
        amount: float,
        price: float | None = None,
    ) -> dict[str, Any]:
        fill_price = self._last_prices.get(product_id, price)
        if fill_price is None:
            raise ExecutionError(f"No price available for {product_id}")

        base, quote = split_product_id(product_id)
        notional = amount * fill_price
        fee = notional * self.fee_rate

        if side == Side.BUY:
            if self.balances.get(quote, 0.0) < notional + fee:
                raise ExecutionError(
                    f"Insufficient {quote}: need {notional + fee:.2f}, "
                    f"have {self.balances.get(quote, 0.0):.2f}"
                )
            self.balances[quote] = self.balances.get(quote, 0.0) - notional - fee
            self.balances[base] = self.balances.get(base, 0.0) + amount
        else:
            if self.balances.get(base, 0.0) < amount:
                raise ExecutionError(
                    f"Insufficient {base}: need {amount}, have {self.balances.get(base, 0.0)}"
                )
            self.balances[base] = self.balances.get(base, 0.0) - amount
            self.balances[quote] = self.balances.get(quote, 0.0) + notional - fee

        order_id = f"paper-{next(self._ids)}"
        order = {
            "id": order_id,
            "symbol": to_symbol(product_id),
            "type": "market",
            "side": side.value.lower(),
            "amount": amount,
            "filled": amount,
            "price": fill_price,
            "average": fill_price,
            "cost": notional,
            "status": "closed",
            "fee": {"cost": fee, "currency": quote},
            "datetime": datetime.now(timezone.utc).isoformat(),
        }
        self.orders[order_id] = order
        logger.debug(f"Paper fill: {side.value} {amount} {product_id} @ {fill_price}")
        return order

    async def cancel_order(self, order_id: str, product_id: str | None = None) -> None:
        # Paper orders fill immediately; only unknown ids are an error
        if order_id not in self.orders:
            raise ExecutionError(f"Unknown order {order_id}")
        self.orders[order_id]["status"] = "canceled"

    async def close(self) -> None:
        return None
