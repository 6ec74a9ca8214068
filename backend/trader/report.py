"""Report formatting for replay results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import json
from typing import Any

from engine.indicators import MarketCondition
from engine.models import PerformanceSummary


class ReportFormatter:
    """Format replay performance for display and export."""

    @staticmethod
    def print_console(
        summary: PerformanceSummary,
        performance: dict[str, dict[str, Any]],
        ticks: int,
        markets: dict[str, MarketCondition | None] | None = None,
    ) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print("  REPLAY RESULTS")
        print("=" * 70)
        print(f"  Ticks processed: {ticks}")

        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Trades:         {summary.total_trades} "
              f"({summary.buy_trades} buy / {summary.sell_trades} sell)")
        print(f"  Wins / Losses:  {summary.winning_trades} / {summary.losing_trades}")
        print(f"  Win rate:       {summary.win_rate:.1f}%")
        print(f"  Realized P&L:   {summary.realized_pnl:+.2f}")
        print(f"  Unrealized P&L: {summary.unrealized_pnl:+.2f}")
        print(f"  Fees:           {summary.total_fees:.2f}")
        print(f"  Net profit:     {summary.net_profit:+.2f}")
        print(f"  Max drawdown:   {summary.max_drawdown:.2f}")

        if performance:
            print("\n" + "-" * 70)
            print("  BY STRATEGY")
            print("-" * 70)
            print(f"  {'Strategy':<10} {'Mode':<11} {'Trades':>7} {'Buys':>6} {'Sells':>6} {'Volume':>12}")
            for name, perf in performance.items():
                print(
                    f"  {name:<10} {perf['mode']:<11} {perf['total_trades']:>7} "
                    f"{perf['buy_trades']:>6} {perf['sell_trades']:>6} "
                    f"{perf['total_volume']:>12.6f}"
                )

        if summary.open_positions:
            print("\n" + "-" * 70)
            print("  OPEN POSITIONS")
            print("-" * 70)
            for product_id, position in summary.open_positions.items():
                print(
                    f"  {product_id:<10} amount={position['amount']:.6f} "
                    f"avg={position['avg_price']:.2f}"
                )

        if markets:
            print("\n" + "-" * 70)
            print("  MARKET CONDITIONS")
            print("-" * 70)
            print(f"  {'Product':<10} {'Price':>12} {'Trend':<9} {'Momentum':<11} {'Volatility':<10}")
            for product_id, condition in markets.items():
                if condition is None:
                    continue
                print(
                    f"  {product_id:<10} {condition.price:>12.2f} "
                    f"{_label(condition.trend):<9} {_label(condition.momentum):<11} "
                    f"{_label(condition.volatility):<10}"
                )

        print("=" * 70 + "\n")

    @staticmethod
    def save_json(
        summary: PerformanceSummary,
        performance: dict[str, dict[str, Any]],
        filepath: str,
        markets: dict[str, MarketCondition | None] | None = None,
    ) -> None:
        """Save summary, per-strategy performance and market conditions to a JSON file."""
        data = {
            "summary": summary.model_dump(mode="json"),
            "strategies": performance,
            "markets": {
                product_id: condition.to_dict() if condition else None
                for product_id, condition in (markets or {}).items()
            },
        }
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, default=str)
        print(f"Results saved to {filepath}")


def _label(value) -> str:
    return value.value if value is not None else "-"
