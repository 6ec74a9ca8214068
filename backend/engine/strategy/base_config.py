"""Configuration fields shared by every strategy.

Strategy configs are frozen: the only way to change parameters on a
running strategy is Strategy.update_parameters, which validates the
merged values and swaps the whole config at once.
"""

from pydantic import BaseModel, ConfigDict, Field

from engine.models import StrategyMode


class BaseStrategyConfig(BaseModel):
    """Parameters common to all strategies."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: StrategyMode = StrategyMode.SIMULATION

    # Base-currency amount per trade (e.g. 0.01 BTC)
    trade_amount: float = Field(default=0.01, gt=0)

    # Minimum relative price move since the last signal, as a fraction (0.005 = 0.5%)
    min_movement_percent: float = Field(default=0.005, ge=0)

    # Simulated fee as a fraction of notional
    fee_rate: float = Field(default=0.0, ge=0, lt=1)

    # Seconds to wait for the order executor before treating it as failed
    execution_timeout: float = Field(default=10.0, gt=0)
