"""
Batch Shipment Pricing

DataFrame in, DataFrame out. The input can come from any source (CSV export,
warehouse query, manual creation) as long as it has the required columns.
The output is the same DataFrame with selection, matching and pricing
columns appended.

REQUIRED INPUT COLUMNS
----------------------
    origin_zip          - Origin ZIP
    destination_zip     - Destination ZIP
    weight_lbs          - Shipment weight in pounds
    freight_class       - NMFC class code
    cost_<account>      - One column per account, null when it had no quote

OUTPUT COLUMNS ADDED
--------------------
    lowest_cost, lowest_cost_account
    historical_price, historical_match_count
    standard_price, final_price, price_reason, pricing_error
    calculator_version

A row that cannot be priced keeps null prices and says why in pricing_error;
the rest of the batch is unaffected.

USAGE
-----
    from pricing.price_shipments import price_shipments
    result = price_shipments(df, ledger, margins={"acme_ltl": 18.0})
"""

import logging
from collections.abc import Mapping
from pathlib import Path

import polars as pl

from .config import PricingConfig
from .errors import InvalidInput, NoQuoteAvailable, PricingError
from .historical import lookup_historical_prices
from .models import ShipmentRequest
from .quote_price import calculate_quote_price
from .rate_selector import add_lowest_cost
from .version import VERSION


logger = logging.getLogger(__name__)

REQUIRED_INPUT_COLS = ["origin_zip", "destination_zip", "weight_lbs", "freight_class"]

_PRICE_SCHEMA = {
    "standard_price": pl.Float64,
    "final_price": pl.Float64,
    "price_reason": pl.Utf8,
    "pricing_error": pl.Utf8,
}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def price_shipments(
    df: pl.DataFrame,
    ledger: pl.DataFrame | str | Path | None = None,
    margins: Mapping[str, float | None] | None = None,
    config: PricingConfig | None = None,
) -> pl.DataFrame:
    """
    Price a DataFrame of shipments.

    Args:
        df: Shipments with REQUIRED_INPUT_COLS and cost_<account> columns
        ledger: Booking ledger DataFrame or CSV path, optional
        margins: Per-account margin percent; missing accounts use config.default_margin
        config: Pricing configuration (defaults when omitted)

    Returns:
        DataFrame with pricing columns appended (see module docstring)
    """
    config = config or PricingConfig()

    missing = [c for c in REQUIRED_INPUT_COLS if c not in df.columns]
    if missing:
        raise InvalidInput(f"Shipments are missing required column(s): {', '.join(missing)}")

    cost_cols = [c for c in df.columns if c.startswith("cost_")]

    # Phase 1: Cheapest valid account per shipment
    df = add_lowest_cost(df, cost_cols)

    # Phase 2: Comparable bookings
    df = lookup_historical_prices(
        df,
        ledger,
        as_of=config.reference_date(),
        lookback_months=config.lookback_months,
        weight_tolerance=config.weight_tolerance,
    )

    # Phase 3: Margin, historical and floor reconciliation
    df = _apply_pricing(df, margins or {}, config)

    # Phase 4: Stamp version
    df = _stamp_version(df)

    return df


def _apply_pricing(
    df: pl.DataFrame,
    margins: Mapping[str, float | None],
    config: PricingConfig,
) -> pl.DataFrame:
    """Run calculate_quote_price per row, capturing failures in pricing_error."""
    rows = []
    for row in df.select(["lowest_cost", "lowest_cost_account", "historical_price"]).iter_rows(named=True):
        rows.append(_price_row(row, margins, config))

    priced = pl.DataFrame(rows, schema=_PRICE_SCHEMA)

    failed = priced.filter(pl.col("pricing_error").is_not_null()).height
    if failed:
        logger.warning("%d of %d shipment(s) could not be priced", failed, len(df))

    return pl.concat([df, priced], how="horizontal")


def _price_row(row: dict, margins: Mapping[str, float | None], config: PricingConfig) -> dict:
    empty = dict.fromkeys(_PRICE_SCHEMA)

    account = row["lowest_cost_account"]
    margin = margins.get(account) if account is not None else None
    if margin is None:
        margin = config.default_margin

    try:
        if row["lowest_cost"] is None:
            raise NoQuoteAvailable("No account returned a valid rate")
        decision = calculate_quote_price(
            row["lowest_cost"],
            margin,
            historical_price=row["historical_price"],
            profit_floor=config.profit_floor,
            account=account,
        )
    except PricingError as e:
        return {**empty, "pricing_error": f"{type(e).__name__}: {e}"}

    return {
        "standard_price": decision.standard_price,
        "final_price": decision.final_price,
        "price_reason": decision.reason.value,
        "pricing_error": None,
    }


def _stamp_version(df: pl.DataFrame) -> pl.DataFrame:
    """Stamp calculator version on output."""
    return df.with_columns(pl.lit(VERSION).alias("calculator_version"))


# =============================================================================
# SHIPMENT RECORDS
# =============================================================================

def read_shipments(df: pl.DataFrame) -> tuple[list[ShipmentRequest], list[str]]:
    """
    Convert a shipment DataFrame to ShipmentRequest records.

    Returns:
        (valid shipments, one "row N: reason" message per rejected row)
    """
    missing = [c for c in REQUIRED_INPUT_COLS if c not in df.columns]
    if missing:
        raise InvalidInput(f"Shipments are missing required column(s): {', '.join(missing)}")

    dims = [c for c in ("length_in", "width_in", "height_in") if c in df.columns]

    shipments, rejected = [], []
    for i, row in enumerate(df.select(REQUIRED_INPUT_COLS + dims).iter_rows(named=True)):
        try:
            shipments.append(ShipmentRequest(**row))
        except InvalidInput as e:
            rejected.append(f"row {i}: {e}")

    if rejected:
        logger.warning("Rejected %d malformed shipment row(s)", len(rejected))
    return shipments, rejected


__all__ = [
    "REQUIRED_INPUT_COLS",
    "price_shipments",
    "read_shipments",
]
