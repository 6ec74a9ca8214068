"""Runtime services: exchange access, risk checks, trading engine, strategy manager."""

from trader.services.order_service import (
    CcxtExchangeClient,
    ExchangeClient,
    PaperExchangeClient,
)
from trader.services.price_replay import PriceReplay
from trader.services.risk_manager import RiskCheck, RiskManager
from trader.services.strategy_manager import StrategyManager
from trader.services.trading_engine import TradingEngine

__all__ = [
    "CcxtExchangeClient",
    "ExchangeClient",
    "PaperExchangeClient",
    "PriceReplay",
    "RiskCheck",
    "RiskManager",
    "StrategyManager",
    "TradingEngine",
]
