"""CLI entry point: replay recorded prices through the strategies.

By default orders go to an in-memory paper exchange seeded with the
configured balances, so active mode can be exercised without exchange
credentials. `--exchange live` routes them to the ccxt exchange named in
the settings instead.

Usage:
    python -m trader --replay prices.csv
    python -m trader --replay prices.csv --strategy sma --param period=5
    python -m trader --replay prices.csv --strategy rsi --strategy macd --mode active
    python -m trader --replay prices.csv --config strategies.yaml --output results.json
    python -m trader --replay prices.csv --mode active --exchange live
"""

import argparse
import asyncio
import logging
import sys
from collections import Counter, defaultdict, deque
from typing import Any

import yaml

from engine.errors import ConfigurationError
from engine.indicators import market_condition
from engine.models import StrategyMode
from engine.strategy import list_strategies
from trader.config import Settings, get_settings
from trader.logging_config import setup_logging
from trader.report import ReportFormatter
from trader.services import (
    CcxtExchangeClient,
    ExchangeClient,
    PaperExchangeClient,
    PriceReplay,
    RiskManager,
    StrategyManager,
    TradingEngine,
)
from trader.strategy_config import load_strategy_config

logger = logging.getLogger("trader")

# Prices kept per product for the closing market analysis
MARKET_HISTORY = 1000


class EventCounter:
    """EventSink that counts events by name and logs trades."""

    def __init__(self):
        self.counts: Counter[str] = Counter()

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.counts[event] += 1
        if event == "trade":
            logger.info(
                f"TRADE {payload['side']} {payload['amount']} {payload['product_id']} "
                f"@ {payload['price']} (strategy={payload.get('strategy')})"
            )


def parse_key_value(text: str) -> tuple[str, Any]:
    """Parse KEY=VALUE, with VALUE read as a YAML scalar (5 -> int, 0.5 -> float)."""
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got '{text}'")
    return key.strip(), yaml.safe_load(value)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m trader",
        description="Replay a price CSV through the trading strategies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m trader --replay prices.csv --strategy sma --param period=5
  python -m trader --replay prices.csv --strategy rsi --mode active --balance USD=5000
        """,
    )
    parser.add_argument(
        "--replay",
        required=True,
        help="CSV file with timestamp,product_id,price[,volume] columns",
    )
    parser.add_argument(
        "--strategy",
        action="append",
        choices=list_strategies(),
        default=None,
        help="Strategy to run (repeatable; default: auto_start entries from the config, else sma)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in StrategyMode],
        default=None,
        help="Strategy mode (default: from config, else simulation)",
    )
    parser.add_argument(
        "--param",
        action="append",
        type=parse_key_value,
        default=[],
        metavar="KEY=VALUE",
        help="Strategy parameter override (repeatable)",
    )
    parser.add_argument(
        "--exchange",
        choices=["paper", "live"],
        default="paper",
        help="Where active-mode orders go (default: paper)",
    )
    parser.add_argument(
        "--balance",
        action="append",
        type=parse_key_value,
        default=[],
        metavar="CURRENCY=AMOUNT",
        help="Paper exchange starting balance (repeatable; default from settings)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Strategy config YAML (default: settings.strategies_file)",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def build_exchange(
    kind: str,
    settings: Settings,
    balances: dict[str, float] | None = None,
) -> ExchangeClient:
    """Create the paper exchange or the configured ccxt exchange."""
    if kind == "live":
        target = f"{settings.exchange_id} sandbox" if settings.exchange_sandbox else settings.exchange_id
        logger.info(f"Routing orders to {target}")
        return CcxtExchangeClient(
            settings.exchange_id,
            api_key=settings.exchange_api_key,
            api_secret=settings.exchange_api_secret,
            sandbox=settings.exchange_sandbox,
        )
    return PaperExchangeClient(balances=balances or dict(settings.initial_balances))


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    strategy_config = load_strategy_config(args.config or settings.strategies_file)

    balances = {k: float(v) for k, v in args.balance}
    exchange = build_exchange(args.exchange, settings, balances)
    sink = EventCounter()
    engine = TradingEngine(
        exchange,
        risk_manager=RiskManager(settings.max_position_size, settings.risk_tolerance),
        event_sink=sink,
    )
    await engine.initialize()

    manager = StrategyManager(engine, event_sink=sink, strategy_config=strategy_config)

    names = args.strategy or [e.name for e in strategy_config.get_auto_start()] or ["sma"]
    overrides: dict[str, Any] = dict(args.param)
    if args.mode:
        overrides["mode"] = args.mode
    overrides.setdefault("execution_timeout", settings.execution_timeout)

    ticks = 0
    history: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=MARKET_HISTORY))
    try:
        for name in names:
            await manager.start_strategy(name, overrides)

        for tick in PriceReplay(args.replay):
            if isinstance(exchange, PaperExchangeClient):
                exchange.update_price(tick.product_id, tick.price)
            await manager.on_price_update(tick)
            history[tick.product_id].append(tick.price)
            ticks += 1
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except (OSError, ValueError) as e:
        logger.error(f"Cannot replay {args.replay}: {e}")
        return 1
    finally:
        performance = manager.get_all_performance()
        await manager.stop_all_strategies()
        await engine.stop()

    summary = manager.get_performance_summary()
    markets = {pid: market_condition(list(prices)) for pid, prices in history.items()}
    ReportFormatter.print_console(summary, performance, ticks, markets)
    logger.info(f"Events emitted: {dict(sink.counts)}")

    if args.output:
        ReportFormatter.save_json(summary, performance, args.output, markets)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else get_settings().log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
