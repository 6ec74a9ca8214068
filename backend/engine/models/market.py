"""Market data models (price ticks and history points)."""

from datetime import datetime, timezone
from typing import NewType

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ProductId = NewType("ProductId", str)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def split_product_id(product_id: str) -> tuple[str, str]:
    """Split a product id into (base, quote) currencies.

    "BTC-USD" -> ("BTC", "USD"). A product id without a separator is
    treated as a base currency quoted in USD.
    """
    if "-" in product_id:
        base, quote = product_id.split("-", 1)
        return base, quote
    if "/" in product_id:
        base, quote = product_id.split("/", 1)
        return base, quote
    return product_id, "USD"


class PriceTick(BaseModel):
    """A single price update from the market-data feed.

    The feed may label the instrument as product_id, productId or symbol.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    product_id: str = Field(
        validation_alias=AliasChoices("product_id", "productId", "symbol")
    )
    price: float = Field(gt=0, allow_inf_nan=False)
    timestamp: datetime = Field(default_factory=_utcnow)
    volume: float | None = Field(default=None, allow_inf_nan=False)

    @property
    def product(self) -> ProductId:
        return ProductId(self.product_id)

    def to_point(self) -> "PricePoint":
        return PricePoint(price=self.price, timestamp=self.timestamp)


class PricePoint(BaseModel):
    """One entry of a per-product price history."""

    model_config = ConfigDict(frozen=True)

    price: float
    timestamp: datetime
