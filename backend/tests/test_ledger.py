"""Tests for the trade ledger (positions, P&L, performance summary)."""

import pytest

from engine.ledger import TradeLedger
from engine.models import Side


@pytest.fixture
def ledger():
    return TradeLedger()


class TestCostBasis:
    """Tests for weighted-average cost basis and realized P&L."""

    def test_weighted_average_then_partial_sell(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.BUY, 1, 200)

        position = ledger.get_position("BTC-USD")
        assert position.amount == pytest.approx(2)
        assert position.avg_price == pytest.approx(150)

        trade = ledger.record_trade("BTC-USD", Side.SELL, 1, 250)
        assert trade.realized_pnl == pytest.approx(100)

        position = ledger.get_position("BTC-USD")
        assert position.amount == pytest.approx(1)
        assert position.avg_price == pytest.approx(150)
        assert position.total_cost == pytest.approx(position.amount * position.avg_price)

    def test_full_sell_removes_position(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 0.5, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 0.5, 90)

        assert ledger.get_position("BTC-USD") is None
        assert ledger.realized_pnl == pytest.approx(-5)

    def test_sell_without_position_realizes_nothing(self, ledger):
        trade = ledger.record_trade("ETH-USD", Side.SELL, 1, 3000)
        assert trade.realized_pnl == 0.0
        assert ledger.get_position("ETH-USD") is None

        summary = ledger.get_performance_summary()
        assert summary.sell_trades == 1
        assert summary.winning_trades == 0
        assert summary.losing_trades == 0

    def test_oversell_realizes_against_held_amount(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        trade = ledger.record_trade("BTC-USD", Side.SELL, 3, 110)

        assert trade.realized_pnl == pytest.approx(10)
        assert ledger.get_position("BTC-USD") is None

    def test_buy_has_no_realized_pnl(self, ledger):
        trade = ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        assert trade.realized_pnl is None

    def test_products_tracked_independently(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("ETH-USD", Side.BUY, 2, 10)

        positions = ledger.get_positions()
        assert set(positions) == {"BTC-USD", "ETH-USD"}
        assert positions["ETH-USD"].avg_price == pytest.approx(10)

    def test_get_position_returns_copy(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        position = ledger.get_position("BTC-USD")
        position.amount = 99

        assert ledger.get_position("BTC-USD").amount == pytest.approx(1)


class TestValidation:
    """Tests for trade input validation."""

    @pytest.mark.parametrize("amount,price,fees", [(0, 100, 0), (-1, 100, 0), (1, 0, 0), (1, 100, -1)])
    def test_invalid_trade_rejected(self, ledger, amount, price, fees):
        with pytest.raises(ValueError):
            ledger.record_trade("BTC-USD", Side.BUY, amount, price, fees=fees)
        assert ledger.get_trades() == []


class TestPerformanceSummary:
    """Tests for the performance summary."""

    def test_empty_summary(self, ledger):
        summary = ledger.get_performance_summary()
        assert summary.total_trades == 0
        assert summary.win_rate == 0.0
        assert summary.net_profit == 0.0
        assert summary.max_drawdown == 0.0

    def test_win_rate_and_gross_totals(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 120)
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 90)

        summary = ledger.get_performance_summary()
        assert summary.total_trades == 4
        assert summary.buy_trades == 2
        assert summary.sell_trades == 2
        assert summary.winning_trades == 1
        assert summary.losing_trades == 1
        assert summary.win_rate == pytest.approx(50.0)
        assert summary.gross_profit == pytest.approx(20)
        assert summary.gross_loss == pytest.approx(10)
        assert summary.realized_pnl == pytest.approx(10)

    def test_unrealized_uses_marked_price(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 2, 100)
        ledger.mark_price("BTC-USD", 110)

        summary = ledger.get_performance_summary()
        assert summary.unrealized_pnl == pytest.approx(20)
        assert summary.open_positions["BTC-USD"]["mark_price"] == pytest.approx(110)

    def test_unrealized_with_explicit_prices(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 2, 100)
        assert ledger.unrealized_pnl({"BTC-USD": 95}) == pytest.approx(-10)

    def test_net_profit_subtracts_fees(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100, fees=1)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 110, fees=1)

        summary = ledger.get_performance_summary()
        assert summary.total_fees == pytest.approx(2)
        assert summary.net_profit == pytest.approx(8)

    def test_max_drawdown(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 130)  # equity 30
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 80)   # equity 10
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 1, 105)  # equity 15

        assert ledger.max_drawdown == pytest.approx(20)

    def test_recent_trades_limit(self, ledger):
        for i in range(15):
            ledger.record_trade("BTC-USD", Side.BUY, 1, 100 + i)

        summary = ledger.get_performance_summary(recent=5)
        assert len(summary.recent_trades) == 5
        assert summary.recent_trades[-1].price == pytest.approx(114)


class TestCapacity:
    """Tests for the bounded trade buffer."""

    def test_trade_eviction_keeps_running_totals(self):
        ledger = TradeLedger(max_trades=4)
        for _ in range(5):
            ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
            ledger.record_trade("BTC-USD", Side.SELL, 1, 101)

        assert len(ledger.get_trades()) == 4
        summary = ledger.get_performance_summary()
        assert summary.total_trades == 10
        assert summary.realized_pnl == pytest.approx(5)
        assert summary.winning_trades == 5

    def test_get_trades_limit(self, ledger):
        for i in range(3):
            ledger.record_trade("BTC-USD", Side.BUY, 1, 100 + i)
        trades = ledger.get_trades(limit=2)
        assert [t.price for t in trades] == [101, 102]


class TestReset:
    """Tests for resetting performance data."""

    def test_reset_clears_everything(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.record_trade("BTC-USD", Side.SELL, 0.5, 120)
        ledger.reset_performance_data()

        summary = ledger.get_performance_summary()
        assert summary.total_trades == 0
        assert summary.realized_pnl == 0.0
        assert summary.open_positions == {}
        assert ledger.get_trades() == []

    def test_reset_is_idempotent(self, ledger):
        ledger.record_trade("BTC-USD", Side.BUY, 1, 100)
        ledger.reset_performance_data()
        first = ledger.get_performance_summary()
        ledger.reset_performance_data()
        second = ledger.get_performance_summary()

        assert first == second
