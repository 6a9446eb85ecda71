"""
Unit Tests for Batch Shipment Pricing

Tests the DataFrame pipeline end to end: selection, historical matching,
pricing and per-row error capture.

Run with: pytest pricing/tests/test_price_shipments.py -v
"""

from datetime import date

import pytest
import polars as pl

from pricing.config import PricingConfig
from pricing.data import ledger_from_bookings
from pricing.errors import InvalidInput
from pricing.models import HistoricalBooking
from pricing.price_shipments import price_shipments, read_shipments
from pricing.version import VERSION


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def shipments():
    return pl.DataFrame({
        "origin_zip": ["30301", "94105", "60601"],
        "destination_zip": ["10001", "98101", "75201"],
        "weight_lbs": [480.0, 1200.0, 300.0],
        "freight_class": ["70", "85", "100"],
        "cost_acme": [120.0, 410.0, None],
        "cost_bolt": [100.0, None, 0.0],
    })


@pytest.fixture
def ledger():
    return ledger_from_bookings([
        HistoricalBooking("30312", "10045", 500.0, "70", 150.0, date(2026, 9, 18)),
    ])


@pytest.fixture
def config():
    return PricingConfig(as_of=date(2026, 10, 18))


def run_pipeline(shipments, ledger, config, margins=None):
    return price_shipments(shipments, ledger, margins={"acme": 18.0, "bolt": 20.0, **(margins or {})}, config=config)


# =============================================================================
# PIPELINE
# =============================================================================

class TestPriceShipments:
    """Tests for price_shipments."""

    def test_output_columns(self, shipments, ledger, config):
        df = run_pipeline(shipments, ledger, config)
        for col in [
            "lowest_cost", "lowest_cost_account",
            "historical_price", "historical_match_count",
            "standard_price", "final_price", "price_reason", "pricing_error",
            "calculator_version",
        ]:
            assert col in df.columns
        assert len(df) == len(shipments)

    def test_historical_price_wins(self, shipments, ledger, config):
        df = run_pipeline(shipments, ledger, config)
        assert df["lowest_cost_account"][0] == "bolt"
        assert df["standard_price"][0] == pytest.approx(125.0)
        assert df["historical_price"][0] == pytest.approx(150.0)
        assert df["final_price"][0] == pytest.approx(150.0)
        assert df["price_reason"][0] == "historical"

    def test_account_margin_used(self, shipments, ledger, config):
        df = run_pipeline(shipments, ledger, config)
        # 410 / (1 - 0.18) = 500.00
        assert df["lowest_cost_account"][1] == "acme"
        assert df["final_price"][1] == pytest.approx(500.0)
        assert df["price_reason"][1] == "standard_margin_only"

    def test_unpriceable_row_does_not_stop_batch(self, shipments, ledger, config):
        df = run_pipeline(shipments, ledger, config)
        assert df["final_price"][2] is None
        assert df["pricing_error"][2].startswith("NoQuoteAvailable")
        assert df["pricing_error"][0] is None

    def test_infinite_cost_is_no_quote(self, config):
        df = price_shipments(pl.DataFrame({
            "origin_zip": ["30301"],
            "destination_zip": ["10001"],
            "weight_lbs": [480.0],
            "freight_class": ["70"],
            "cost_acme": [float("inf")],
        }), config=config)
        assert df["lowest_cost"][0] is None
        assert df["pricing_error"][0].startswith("NoQuoteAvailable")

    def test_profit_floor(self, shipments, ledger):
        config = PricingConfig(as_of=date(2026, 10, 18), profit_floor=100.0)
        df = run_pipeline(shipments, ledger, config)
        assert df["final_price"][0] == pytest.approx(200.0)
        assert df["price_reason"][0] == "profit_floor"

    def test_without_ledger(self, shipments, config):
        df = price_shipments(shipments, None, margins={"bolt": 20.0}, config=config)
        assert df["historical_price"][0] is None
        assert df["final_price"][0] == pytest.approx(125.0)

    def test_version_stamp(self, shipments, ledger, config):
        df = run_pipeline(shipments, ledger, config)
        assert df["calculator_version"].unique().to_list() == [VERSION]

    def test_missing_column(self, config):
        with pytest.raises(InvalidInput, match="freight_class"):
            price_shipments(pl.DataFrame({
                "origin_zip": ["30301"],
                "destination_zip": ["10001"],
                "weight_lbs": [480.0],
            }), config=config)


# =============================================================================
# SHIPMENT RECORDS
# =============================================================================

class TestReadShipments:
    """Tests for read_shipments."""

    def test_valid_and_rejected(self):
        df = pl.DataFrame({
            "origin_zip": ["30301", "94105", ""],
            "destination_zip": ["10001", "98101", "75201"],
            "weight_lbs": [480.0, -5.0, 300.0],
            "freight_class": ["70", "85", "100"],
        })
        shipments, rejected = read_shipments(df)

        assert len(shipments) == 1
        assert shipments[0].origin_zip == "30301"
        assert len(rejected) == 2
        assert rejected[0].startswith("row 1")
