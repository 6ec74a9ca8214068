"""Tests for the replay CLI."""

import argparse
import json

import pytest

from trader.__main__ import EventCounter, build_exchange, main, parse_args, parse_key_value
from trader.config import Settings
from trader.services import CcxtExchangeClient, PaperExchangeClient

SCENARIO = [49900, 49950, 50000, 50050, 50100, 50150, 50100, 50050, 50000, 49950, 49900]


@pytest.fixture
def scenario_csv(tmp_path):
    path = tmp_path / "prices.csv"
    rows = ["timestamp,product_id,price"]
    rows += [f"{1704067200 + i * 60},BTC-USD,{price}" for i, price in enumerate(SCENARIO)]
    path.write_text("\n".join(rows) + "\n")
    return path


@pytest.fixture
def no_config(tmp_path):
    return str(tmp_path / "no-strategies.yaml")


class TestArguments:
    """Tests for argument parsing."""

    def test_parse_key_value_scalars(self):
        assert parse_key_value("period=5") == ("period", 5)
        assert parse_key_value("min_movement_percent=0.01") == ("min_movement_percent", 0.01)
        assert parse_key_value(" mode = active") == ("mode", "active")

    def test_parse_key_value_rejects_missing_separator(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_key_value("period")

    def test_defaults(self):
        args = parse_args(["--replay", "prices.csv"])
        assert args.strategy is None
        assert args.mode is None
        assert args.param == []
        assert args.output is None
        assert args.exchange == "paper"

    def test_repeatable_options(self):
        args = parse_args([
            "--replay", "prices.csv",
            "--strategy", "rsi", "--strategy", "macd",
            "--param", "trade_amount=0.1",
            "--balance", "USDT=500",
        ])
        assert args.strategy == ["rsi", "macd"]
        assert args.param == [("trade_amount", 0.1)]
        assert args.balance == [("USDT", 500)]

    def test_unknown_strategy_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--replay", "prices.csv", "--strategy", "bollinger"])

    def test_replay_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestEventCounter:
    """Tests for the counting event sink."""

    def test_counts_events(self):
        counter = EventCounter()
        counter.emit("signal", {})
        counter.emit("signal", {})
        counter.emit("trade", {"side": "BUY", "amount": 1, "product_id": "BTC-USD", "price": 1})

        assert counter.counts == {"signal": 2, "trade": 1}


class TestBuildExchange:
    """Tests for exchange selection."""

    def test_paper_uses_configured_balances(self):
        settings = Settings(_env_file=None, initial_balances={"USDT": 250.0})

        exchange = build_exchange("paper", settings, {})

        assert isinstance(exchange, PaperExchangeClient)
        assert exchange.balances == {"USDT": 250.0}

    def test_paper_balance_overrides(self):
        exchange = build_exchange("paper", Settings(_env_file=None), {"USD": 42.0})
        assert exchange.balances == {"USD": 42.0}

    def test_live_uses_exchange_settings(self):
        settings = Settings(
            _env_file=None,
            exchange_id="kraken",
            exchange_api_key="key",
            exchange_api_secret="secret",
            exchange_sandbox=True,
        )

        exchange = build_exchange("live", settings)

        assert isinstance(exchange, CcxtExchangeClient)
        assert exchange._exchange_id == "kraken"
        assert exchange._api_key == "key"
        assert exchange._api_secret == "secret"
        assert exchange._sandbox is True


class TestReplayRun:
    """End-to-end runs of the replay CLI."""

    def test_replay_writes_json_report(self, scenario_csv, no_config, tmp_path, capsys):
        output = tmp_path / "results.json"

        code = main([
            "--replay", str(scenario_csv),
            "--strategy", "sma",
            "--param", "period=5",
            "--param", "min_movement_percent=0",
            "--config", no_config,
            "--output", str(output),
        ])

        assert code == 0
        assert "REPLAY RESULTS" in capsys.readouterr().out

        data = json.loads(output.read_text())
        assert data["summary"]["total_trades"] == 2
        assert data["summary"]["realized_pnl"] == pytest.approx(-0.5)
        assert data["strategies"]["sma"]["total_trades"] == 2
        assert data["strategies"]["sma"]["mode"] == "simulation"

        market = data["markets"]["BTC-USD"]
        assert market["price"] == 49900
        assert market["momentum"] == "neutral"
        assert market["trend"] is None

    def test_active_mode_uses_paper_exchange(self, scenario_csv, no_config, tmp_path):
        output = tmp_path / "results.json"

        code = main([
            "--replay", str(scenario_csv),
            "--mode", "active",
            "--param", "period=5",
            "--param", "min_movement_percent=0",
            "--balance", "USD=1000",
            "--config", no_config,
            "--output", str(output),
        ])

        assert code == 0
        data = json.loads(output.read_text())
        trades = data["strategies"]["sma"]["recent_trades"]
        assert [t["order_id"] for t in trades] == ["paper-1", "paper-2"]
        assert not any(t["is_simulated"] for t in trades)

    def test_live_exchange_option(self, scenario_csv, no_config, tmp_path, monkeypatch):
        created = []

        def fake_client(*args, **kwargs):
            created.append((args, kwargs))
            return PaperExchangeClient({"USD": 1000.0})

        monkeypatch.setattr("trader.__main__.CcxtExchangeClient", fake_client)
        output = tmp_path / "results.json"

        code = main([
            "--replay", str(scenario_csv),
            "--mode", "active",
            "--exchange", "live",
            "--param", "period=5",
            "--param", "min_movement_percent=0",
            "--config", no_config,
            "--output", str(output),
        ])

        assert code == 0
        assert len(created) == 1
        assert set(created[0][1]) == {"api_key", "api_secret", "sandbox"}
        trades = json.loads(output.read_text())["strategies"]["sma"]["recent_trades"]
        assert [t["order_id"] for t in trades] == ["paper-1", "paper-2"]

    def test_invalid_parameter_exit_code(self, scenario_csv, no_config):
        code = main([
            "--replay", str(scenario_csv),
            "--param", "lookback=3",
            "--config", no_config,
        ])
        assert code == 2

    def test_missing_replay_file(self, tmp_path, no_config):
        code = main(["--replay", str(tmp_path / "absent.csv"), "--config", no_config])
        assert code == 1
