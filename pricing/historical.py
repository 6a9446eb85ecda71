"""
Historical Price Matcher

Finds comparable past bookings and averages what customers paid.

A booking is comparable to a requested shipment when all of these hold:

    booked_date   >= as_of - lookback_months
    origin ZIP3   == requested origin ZIP3
    destination   == requested destination ZIP3
    freight_class == requested class (exact text match)
    weight_lbs    within [weight * (1 - tol), weight * (1 + tol)], both ends inclusive

ZIP3 and a weight band stand in for lane and weight-break equivalence when
history is sparse. "No match" is None, never 0.
"""

import calendar
import logging
from datetime import date
from pathlib import Path

import polars as pl

from .data.ledger import freight_class_expr, normalize_ledger, zip_expr
from .data.loaders import load_ledger_csv
from .data.reference.policy import LOOKBACK_MONTHS, WEIGHT_TOLERANCE, ZIP_PREFIX_LENGTH


logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def months_before(as_of: date, months: int) -> date:
    """
    Same day-of-month `months` earlier, clamped to the month's last day.

    months_before(date(2026, 3, 31), 1) -> date(2026, 2, 28)
    """
    year, month = divmod(as_of.month - 1 - months, 12)
    year += as_of.year
    month += 1
    day = min(as_of.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _zip_prefix(df: pl.DataFrame, col: str) -> pl.Expr:
    """First ZIP_PREFIX_LENGTH characters, null when the ZIP is too short."""
    text = zip_expr(df, col)
    return (
        pl.when(text.str.len_chars() >= ZIP_PREFIX_LENGTH)
        .then(text.str.slice(0, ZIP_PREFIX_LENGTH))
        .otherwise(None)
    )


def _resolve_ledger(ledger: pl.DataFrame | str | Path | None) -> pl.DataFrame | None:
    if ledger is None:
        return None
    if isinstance(ledger, (str, Path)):
        return load_ledger_csv(ledger)
    return normalize_ledger(ledger)


def _windowed_ledger(ledger: pl.DataFrame, as_of: date, lookback_months: int) -> pl.DataFrame:
    """Ledger rows inside the lookback window, with ZIP3 keys added."""
    cutoff = months_before(as_of, lookback_months)
    return (
        ledger
        .filter(pl.col("booked_date") >= cutoff)
        .with_columns([
            _zip_prefix(ledger, "origin_zip").alias("_origin_zip3"),
            _zip_prefix(ledger, "destination_zip").alias("_destination_zip3"),
        ])
        .filter(pl.col("_origin_zip3").is_not_null() & pl.col("_destination_zip3").is_not_null())
        .select(["_origin_zip3", "_destination_zip3", "freight_class", "weight_lbs", "sale_price"])
    )


# =============================================================================
# VECTORISED LOOKUP
# =============================================================================

def lookup_historical_prices(
    shipments: pl.DataFrame,
    ledger: pl.DataFrame | str | Path | None,
    as_of: date | None = None,
    lookback_months: int = LOOKBACK_MONTHS,
    weight_tolerance: float = WEIGHT_TOLERANCE,
) -> pl.DataFrame:
    """
    Add historical prices to a shipment DataFrame.

    Args:
        shipments: DataFrame with origin_zip, destination_zip, weight_lbs, freight_class
        ledger: Booking ledger DataFrame, path to a ledger CSV, or None
        as_of: Reference date for the lookback window (default: today)
        lookback_months: Trailing window in months
        weight_tolerance: Band half-width as a fraction of the requested weight

    Returns:
        shipments with added columns:
            - historical_price: Mean matched sale price (2 dp), null when no match
            - historical_match_count: Number of matched bookings
    """
    as_of = as_of or date.today()
    ledger = _resolve_ledger(ledger)

    df = shipments.with_row_index("_row_id")

    if ledger is None or ledger.is_empty():
        return df.with_columns([
            pl.lit(None, dtype=pl.Float64).alias("historical_price"),
            pl.lit(0, dtype=pl.UInt32).alias("historical_match_count"),
        ]).drop("_row_id")

    window = _windowed_ledger(ledger, as_of, lookback_months)

    keys = df.select([
        "_row_id",
        _zip_prefix(df, "origin_zip").alias("_origin_zip3"),
        _zip_prefix(df, "destination_zip").alias("_destination_zip3"),
        freight_class_expr(df).alias("freight_class"),
        pl.col("weight_lbs").cast(pl.Float64, strict=False).alias("_requested_lbs"),
    ])

    matches = (
        keys
        .join(window, on=["_origin_zip3", "_destination_zip3", "freight_class"], how="inner")
        .filter(
            pl.col("weight_lbs").is_between(
                (pl.col("_requested_lbs") * (1 - weight_tolerance)).round(6),
                (pl.col("_requested_lbs") * (1 + weight_tolerance)).round(6),
                closed="both",
            )
        )
        .group_by("_row_id")
        .agg([
            pl.col("sale_price").mean().round(2).alias("historical_price"),
            pl.len().alias("historical_match_count"),
        ])
    )

    df = (
        df
        .join(matches, on="_row_id", how="left")
        .with_columns(pl.col("historical_match_count").fill_null(0))
        .sort("_row_id")
        .drop("_row_id")
    )

    logger.debug(
        "Historical lookup: %d of %d shipment(s) matched",
        df.filter(pl.col("historical_price").is_not_null()).height, len(df),
    )
    return df


# =============================================================================
# SINGLE SHIPMENT
# =============================================================================

def match_historical_price(
    origin_zip: str,
    destination_zip: str,
    weight_lbs: float,
    freight_class: str,
    ledger: pl.DataFrame | str | Path | None,
    as_of: date | None = None,
    lookback_months: int = LOOKBACK_MONTHS,
    weight_tolerance: float = WEIGHT_TOLERANCE,
) -> float | None:
    """
    Mean sale price of comparable bookings for one shipment.

    Returns:
        Average price rounded to 2 decimals, or None when either ZIP is shorter
        than three characters, the ledger is missing, or nothing matches
    """
    origin_zip = str(origin_zip or "").strip()
    destination_zip = str(destination_zip or "").strip()
    if len(origin_zip) < ZIP_PREFIX_LENGTH or len(destination_zip) < ZIP_PREFIX_LENGTH:
        return None

    shipment = pl.DataFrame({
        "origin_zip": [origin_zip],
        "destination_zip": [destination_zip],
        "weight_lbs": [float(weight_lbs)],
        "freight_class": [str(freight_class).strip()],
    })

    result = lookup_historical_prices(
        shipment,
        ledger,
        as_of=as_of,
        lookback_months=lookback_months,
        weight_tolerance=weight_tolerance,
    )
    return result["historical_price"][0]


__all__ = [
    "months_before",
    "lookup_historical_prices",
    "match_historical_price",
]
