"""Tests for settings and strategies.yaml loading."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from trader.config import Settings, get_settings
from trader.strategy_config import StrategiesConfig, StrategyEntry, load_strategy_config

REPO_STRATEGIES = Path(__file__).resolve().parents[2] / "strategies.yaml"


class TestSettings:
    """Tests for Settings loaded from the environment."""

    def test_defaults(self, monkeypatch):
        for var in ("EXCHANGE_ID", "MAX_POSITION_SIZE", "RISK_TOLERANCE", "INITIAL_BALANCES"):
            monkeypatch.delenv(var, raising=False)

        settings = Settings(_env_file=None)

        assert settings.exchange_id == "coinbase"
        assert settings.exchange_sandbox is False
        assert settings.max_position_size == 1000.0
        assert settings.risk_tolerance == 0.05
        assert settings.execution_timeout == 10.0
        assert settings.initial_balances == {"USD": 10000.0}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("EXCHANGE_ID", "kraken")
        monkeypatch.setenv("EXCHANGE_SANDBOX", "true")
        monkeypatch.setenv("MAX_POSITION_SIZE", "250")
        monkeypatch.setenv("INITIAL_BALANCES", '{"USDT": 500, "BTC": 0.1}')

        settings = Settings(_env_file=None)

        assert settings.exchange_id == "kraken"
        assert settings.exchange_sandbox is True
        assert settings.max_position_size == 250.0
        assert settings.initial_balances == {"USDT": 500.0, "BTC": 0.1}

    def test_get_settings_is_cached(self, monkeypatch):
        get_settings.cache_clear()
        try:
            monkeypatch.setenv("LOG_LEVEL", "DEBUG")
            first = get_settings()
            monkeypatch.setenv("LOG_LEVEL", "ERROR")
            assert get_settings() is first
            assert first.log_level == "DEBUG"
        finally:
            get_settings.cache_clear()


class TestStrategyEntry:
    """Tests for StrategyEntry validation."""

    def test_name_is_normalized(self):
        entry = StrategyEntry(name="  SMA ")
        assert entry.name == "sma"
        assert entry.auto_start is False
        assert entry.parameters == {}

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError, match="unknown strategy"):
            StrategyEntry(name="bollinger")

    def test_invalid_parameters_rejected(self):
        with pytest.raises(ValidationError):
            StrategyEntry(name="sma", parameters={"period": 0})

    def test_parameters_of_another_strategy_rejected(self):
        with pytest.raises(ValidationError):
            StrategyEntry(name="sma", parameters={"oversold_threshold": 20})


class TestStrategiesConfig:
    """Tests for StrategiesConfig."""

    def test_duplicates_rejected(self):
        with pytest.raises(ValidationError, match="more than once"):
            StrategiesConfig(strategies=[{"name": "sma"}, {"name": "SMA"}])

    def test_parameters_for(self):
        config = StrategiesConfig(
            strategies=[{"name": "rsi", "parameters": {"oversold_threshold": 25}}]
        )

        assert config.parameters_for("RSI") == {"oversold_threshold": 25}
        assert config.parameters_for("macd") == {}

    def test_parameters_for_returns_copy(self):
        config = StrategiesConfig(strategies=[{"name": "sma", "parameters": {"period": 5}}])
        config.parameters_for("sma")["period"] = 99
        assert config.parameters_for("sma") == {"period": 5}

    def test_auto_start(self):
        config = StrategiesConfig(
            strategies=[{"name": "sma", "auto_start": True}, {"name": "macd"}]
        )
        assert [e.name for e in config.get_auto_start()] == ["sma"]


class TestLoadStrategyConfig:
    """Tests for loading strategies.yaml."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_strategy_config(tmp_path / "missing.yaml")
        assert config.strategies == []
        assert config.get_auto_start() == []

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "strategies.yaml"
        path.write_text("")
        assert load_strategy_config(path).strategies == []

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "strategies.yaml"
        path.write_text(
            "strategies:\n"
            "  - name: macd\n"
            "    auto_start: true\n"
            "    parameters:\n"
            "      fast_period: 5\n"
            "      slow_period: 10\n"
        )

        config = load_strategy_config(path)

        assert config.get_entry("macd").auto_start is True
        assert config.parameters_for("macd") == {"fast_period": 5, "slow_period": 10}

    def test_invalid_yaml_entry(self, tmp_path):
        path = tmp_path / "strategies.yaml"
        path.write_text("strategies:\n  - name: sma\n    parameters:\n      period: -3\n")

        with pytest.raises(ValidationError):
            load_strategy_config(path)

    def test_loads_env_file_beside_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SIGNAL_TRADER_TEST_KEY", "placeholder")
        monkeypatch.delenv("SIGNAL_TRADER_TEST_KEY")
        (tmp_path / ".env").write_text("SIGNAL_TRADER_TEST_KEY=from-dotenv\n")

        load_strategy_config(tmp_path / "strategies.yaml")

        assert os.environ["SIGNAL_TRADER_TEST_KEY"] == "from-dotenv"

    def test_repository_config_is_valid(self):
        config = load_strategy_config(REPO_STRATEGIES)

        assert {e.name for e in config.strategies} == {"sma", "rsi", "macd"}
        assert [e.name for e in config.get_auto_start()] == ["sma"]
