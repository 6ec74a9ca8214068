"""Logging setup shared by the CLI entry points."""

import logging

_NOISY_LOGGERS = ("asyncio", "ccxt", "urllib3")


def setup_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging with the standard console format."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
