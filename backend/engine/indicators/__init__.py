"""Technical indicators (pure math, no I/O)."""

from engine.indicators.indicators import (
    BollingerBands,
    MacdResult,
    MacdState,
    Stochastic,
    atr,
    bollinger_bands,
    ema,
    ema_series,
    macd,
    mfi,
    rsi,
    rsi_from_window,
    sma,
    stochastic,
    true_range,
    volatility,
    vwap,
    williams_r,
)
from engine.indicators.market import (
    MarketCondition,
    Momentum,
    PriceChange,
    Trend,
    VolatilityLevel,
    analyze_momentum,
    analyze_trend,
    classify_volatility,
    find_resistance,
    find_support,
    market_condition,
    price_change,
)

__all__ = [
    "BollingerBands",
    "MacdResult",
    "MacdState",
    "MarketCondition",
    "Momentum",
    "PriceChange",
    "Stochastic",
    "Trend",
    "VolatilityLevel",
    "analyze_momentum",
    "analyze_trend",
    "atr",
    "bollinger_bands",
    "classify_volatility",
    "ema",
    "ema_series",
    "find_resistance",
    "find_support",
    "macd",
    "market_condition",
    "mfi",
    "price_change",
    "rsi",
    "rsi_from_window",
    "sma",
    "stochastic",
    "true_range",
    "volatility",
    "vwap",
    "williams_r",
]
