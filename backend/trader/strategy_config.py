"""Strategy configuration loaded from strategies.yaml.

Example:

    strategies:
      - name: sma
        auto_start: true
        parameters:
          period: 20
          mode: simulation
      - name: rsi
        parameters:
          oversold_threshold: 25

A missing file means: no strategy auto-starts, every strategy uses its
defaults.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from engine.errors import ConfigurationError
from engine.strategy import get_strategy_class, list_strategies

logger = logging.getLogger(__name__)


class StrategyEntry(BaseModel):
    """Default parameters for one strategy."""

    name: str
    auto_start: bool = False
    parameters: dict[str, Any] = {}

    @model_validator(mode="after")
    def _validate(self):
        self.name = self.name.strip().lower()
        if self.name not in list_strategies():
            raise ValueError(
                f"unknown strategy '{self.name}', expected one of {list_strategies()}"
            )
        try:
            get_strategy_class(self.name).build_config(self.parameters)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return self


class StrategiesConfig(BaseModel):
    """Top-level strategies.yaml configuration."""

    strategies: list[StrategyEntry] = []

    @model_validator(mode="after")
    def _validate(self):
        names = [s.name for s in self.strategies]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"strategies listed more than once: {duplicates}")
        return self

    def get_entry(self, name: str) -> StrategyEntry | None:
        name = name.strip().lower()
        for entry in self.strategies:
            if entry.name == name:
                return entry
        return None

    def parameters_for(self, name: str) -> dict[str, Any]:
        """Configured default parameters for a strategy ({} if not listed)."""
        entry = self.get_entry(name)
        return dict(entry.parameters) if entry else {}

    def get_auto_start(self) -> list[StrategyEntry]:
        return [s for s in self.strategies if s.auto_start]


_DEFAULT_PATH = Path("strategies.yaml")


def load_strategy_config(path: Path | str | None = None) -> StrategiesConfig:
    """Load strategy config from a YAML file.

    Falls back to defaults (nothing auto-started) if the file doesn't exist.
    """
    config_path = Path(path) if path else _DEFAULT_PATH

    # Load .env next to the config so exchange credentials are available
    load_dotenv(config_path.parent / ".env", override=False)

    if not config_path.exists():
        logger.info("No strategy config found at %s, using defaults", config_path)
        return StrategiesConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = StrategiesConfig(**raw)
    logger.info(
        "Loaded strategy config: %d strategies (%d auto-start)",
        len(config.strategies),
        len(config.get_auto_start()),
    )
    return config
