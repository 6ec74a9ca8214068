"""Error taxonomy for the signal engine.

Insufficient indicator data is never an exception (indicators return None).
Execution problems are downgraded to ExecutionResult values by the trading
engine. Lifecycle and configuration errors propagate to the caller.
"""


class ConfigurationError(Exception):
    """Base class for strategy lifecycle and configuration errors."""


class UnknownStrategyError(ConfigurationError, KeyError):
    """No strategy kind exists under the requested name."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(
            f"Unknown strategy '{name}'. Available: {', '.join(available) or '(none)'}"
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class StrategyAlreadyRunningError(ConfigurationError):
    """Attempted to start a strategy that is already running."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Strategy '{name}' is already running")


class StrategyNotRunningError(ConfigurationError):
    """Attempted to stop or update a strategy that is not running."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Strategy '{name}' is not running")


class InvalidParametersError(ConfigurationError, ValueError):
    """Strategy parameters failed validation."""


class ExecutionError(Exception):
    """Transport-level failure talking to an exchange."""
