"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Exchange (ccxt exchange id, e.g. "coinbase")
    exchange_id: str = "coinbase"
    exchange_api_key: str = ""
    exchange_api_secret: str = ""
    exchange_sandbox: bool = False

    # Risk limits (quote currency)
    max_position_size: float = 1000.0
    risk_tolerance: float = 0.05

    # Seconds before an order call is treated as failed
    execution_timeout: float = 10.0

    # Starting balances for the paper exchange
    initial_balances: dict[str, float] = {"USD": 10000.0}

    # Strategy config file (see strategy_config.py)
    strategies_file: str = "strategies.yaml"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
