"""CSV price feed for replaying recorded ticks through the strategies.

Expected columns: timestamp, product_id, price and optionally volume.
Timestamps may be ISO-8601 strings or epoch seconds/milliseconds.
"""

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from engine.models import PriceTick

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("timestamp", "product_id", "price")

# Epoch values above this are milliseconds
_EPOCH_MS_THRESHOLD = 1e11


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 or epoch (s/ms) timestamp into an aware datetime.

    Raises:
        ValueError: Unparseable or out-of-range timestamp
    """
    value = value.strip()
    try:
        epoch = float(value)
    except ValueError:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

    if epoch > _EPOCH_MS_THRESHOLD:
        epoch /= 1000
    try:
        return datetime.fromtimestamp(epoch, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"timestamp out of range: {value}") from e


class PriceReplay:
    """Yield PriceTicks from a CSV file in file order."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.skipped = 0

    def __iter__(self) -> Iterator[PriceTick]:
        self.skipped = 0
        with open(self.path, newline="") as f:
            reader = csv.DictReader(f)
            columns = [c.strip() for c in reader.fieldnames or []]
            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise ValueError(f"{self.path}: missing required columns {missing}")
            reader.fieldnames = columns

            for line_no, row in enumerate(reader, start=2):
                try:
                    volume = (row.get("volume") or "").strip()
                    yield PriceTick(
                        product_id=row["product_id"].strip(),
                        price=float(row["price"]),
                        timestamp=parse_timestamp(row["timestamp"]),
                        volume=float(volume) if volume else None,
                    )
                except (ValueError, ValidationError) as e:
                    self.skipped += 1
                    logger.warning(f"{self.path}:{line_no}: skipping malformed row: {e}")

        if self.skipped:
            logger.info(f"Replay of {self.path} skipped {self.skipped} malformed rows")
