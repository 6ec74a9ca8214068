"""Tests for the CSV price replay feed."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from engine.models import PriceTick
from trader.services import PriceReplay
from trader.services.price_replay import parse_timestamp

NEW_YEAR = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == NEW_YEAR

    def test_iso_with_offset(self):
        assert parse_timestamp("2024-01-01T01:00:00+01:00") == NEW_YEAR

    def test_naive_iso_is_utc(self):
        assert parse_timestamp(" 2024-01-01T00:00:00 ") == NEW_YEAR

    def test_epoch_seconds(self):
        assert parse_timestamp("1704067200") == NEW_YEAR

    def test_epoch_milliseconds(self):
        assert parse_timestamp("1704067200000") == NEW_YEAR

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    @pytest.mark.parametrize("value", ["inf", "-inf", "1e30", "nan"])
    def test_out_of_range_epoch(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestPriceTick:
    """Tests for PriceTick validation."""

    def test_aliases(self):
        assert PriceTick(symbol="ETH-USD", price=1).product_id == "ETH-USD"
        assert PriceTick(productId="ETH-USD", price=1).product_id == "ETH-USD"

    @pytest.mark.parametrize("price", [0, -1, float("inf"), float("nan")])
    def test_rejects_unusable_prices(self, price):
        with pytest.raises(ValidationError):
            PriceTick(product_id="BTC-USD", price=price)

    def test_rejects_infinite_volume(self):
        with pytest.raises(ValidationError):
            PriceTick(product_id="BTC-USD", price=1, volume=float("inf"))


class TestPriceReplay:
    """Tests for reading ticks from CSV."""

    def test_reads_ticks_in_order(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text(
            "timestamp,product_id,price,volume\n"
            "1704067200,BTC-USD,42000.5,1.2\n"
            "1704067260,ETH-USD,2300,\n"
        )

        ticks = list(PriceReplay(path))

        assert [t.product_id for t in ticks] == ["BTC-USD", "ETH-USD"]
        assert ticks[0].price == 42000.5
        assert ticks[0].volume == 1.2
        assert ticks[0].timestamp == NEW_YEAR
        assert ticks[1].volume is None

    def test_volume_column_optional(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text("timestamp,product_id,price\n2024-01-01T00:00:00Z,BTC-USD,100\n")

        ticks = list(PriceReplay(path))

        assert len(ticks) == 1
        assert ticks[0].volume is None

    def test_header_whitespace_tolerated(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text("timestamp, product_id, price\n1704067200, BTC-USD,100\n")

        assert [t.product_id for t in PriceReplay(path)] == ["BTC-USD"]

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text("time,symbol,close\n1,BTC-USD,100\n")

        with pytest.raises(ValueError, match="missing required columns"):
            list(PriceReplay(path))

    def test_malformed_rows_skipped(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text(
            "timestamp,product_id,price\n"
            "1704067200,BTC-USD,100\n"
            "1704067201,BTC-USD,not-a-price\n"
            "1704067202,BTC-USD,-5\n"
            "soon,BTC-USD,101\n"
            "1704067203,BTC-USD,102\n"
        )
        replay = PriceReplay(path)

        ticks = list(replay)

        assert [t.price for t in ticks] == [100, 102]
        assert replay.skipped == 3

    def test_out_of_range_rows_skipped(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text(
            "timestamp,product_id,price\n"
            "inf,BTC-USD,100\n"
            "1e30,BTC-USD,100\n"
            "1700000000,BTC-USD,inf\n"
            "1700000000,BTC-USD,101\n"
        )
        replay = PriceReplay(path)

        assert [t.price for t in replay] == [101]
        assert replay.skipped == 3

    def test_replay_is_reiterable(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text("timestamp,product_id,price\n1704067200,BTC-USD,100\n")
        replay = PriceReplay(path)

        assert len(list(replay)) == 1
        assert len(list(replay)) == 1
