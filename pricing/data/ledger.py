"""
Booking Ledger Schema

Column contract for the historical booking ledger and the tolerant
normalisation every loader runs before matching.

REQUIRED COLUMNS
----------------
    origin_zip          - Origin ZIP (text, leading zeros kept)
    destination_zip     - Destination ZIP (text, leading zeros kept)
    weight_lbs          - Booked weight in pounds
    freight_class       - NMFC class code, compared as text ("70", "77.5")
    sale_price          - Price charged to the customer
    booked_date         - Date the shipment was booked

MALFORMED ROWS
--------------
Rows with an unparseable date, a non-numeric or non-positive weight or price,
or a missing ZIP/class are dropped. They never abort a load or a match.
"""

import polars as pl


LEDGER_COLS = [
    "origin_zip",
    "destination_zip",
    "weight_lbs",
    "freight_class",
    "sale_price",
    "booked_date",
]

LEDGER_SCHEMA = {
    "origin_zip": pl.Utf8,
    "destination_zip": pl.Utf8,
    "weight_lbs": pl.Float64,
    "freight_class": pl.Utf8,
    "sale_price": pl.Float64,
    "booked_date": pl.Date,
}

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%Y/%m/%d"]


def empty_ledger() -> pl.DataFrame:
    """Ledger with the right schema and no rows."""
    return pl.DataFrame(schema=LEDGER_SCHEMA)


def ledger_from_bookings(bookings) -> pl.DataFrame:
    """Build a ledger DataFrame from HistoricalBooking records."""
    rows = [
        {
            "origin_zip": b.origin_zip,
            "destination_zip": b.destination_zip,
            "weight_lbs": b.weight_lbs,
            "freight_class": b.freight_class,
            "sale_price": b.sale_price,
            "booked_date": b.booked_date,
        }
        for b in bookings
    ]
    if not rows:
        return empty_ledger()
    return normalize_ledger(pl.DataFrame(rows))


def zip_expr(df: pl.DataFrame, col: str) -> pl.Expr:
    """ZIP as stripped text; numeric ZIPs get their leading zeros back."""
    if df.schema[col].is_numeric():
        return pl.col(col).cast(pl.Int64, strict=False).cast(pl.Utf8).str.zfill(5)
    return pl.col(col).cast(pl.Utf8).str.strip_chars()


def freight_class_expr(df: pl.DataFrame, col: str = "freight_class") -> pl.Expr:
    """Freight class as text; numeric classes lose a trailing ".0"."""
    if df.schema[col].is_numeric():
        number = pl.col(col).cast(pl.Float64)
        return (
            pl.when(number == number.floor())
            .then(number.cast(pl.Int64, strict=False).cast(pl.Utf8))
            .otherwise(number.cast(pl.Utf8))
        )
    return pl.col(col).cast(pl.Utf8).str.strip_chars()


def _date_expr(df: pl.DataFrame) -> pl.Expr:
    dtype = df.schema["booked_date"]
    if dtype == pl.Date:
        return pl.col("booked_date")
    if isinstance(dtype, pl.Datetime):
        return pl.col("booked_date").dt.date()

    text = pl.col("booked_date").cast(pl.Utf8).str.strip_chars().str.slice(0, 10)
    return pl.coalesce([text.str.to_date(fmt, strict=False) for fmt in DATE_FORMATS])


def normalize_ledger(df: pl.DataFrame) -> pl.DataFrame:
    """
    Cast ledger columns to LEDGER_SCHEMA and drop malformed rows.

    Raises:
        ValueError: if a required column is missing entirely
    """
    missing = [c for c in LEDGER_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"Ledger is missing required column(s): {', '.join(missing)}")

    df = df.select([
        zip_expr(df, "origin_zip").alias("origin_zip"),
        zip_expr(df, "destination_zip").alias("destination_zip"),
        pl.col("weight_lbs").cast(pl.Utf8).str.strip_chars()
        .cast(pl.Float64, strict=False).alias("weight_lbs"),
        freight_class_expr(df).alias("freight_class"),
        pl.col("sale_price").cast(pl.Utf8).str.strip_chars()
        .str.replace_all(r"[$,]", "")
        .cast(pl.Float64, strict=False).alias("sale_price"),
        _date_expr(df).alias("booked_date"),
    ])

    return df.filter(
        pl.col("origin_zip").is_not_null() & (pl.col("origin_zip") != "") &
        pl.col("destination_zip").is_not_null() & (pl.col("destination_zip") != "") &
        pl.col("freight_class").is_not_null() & (pl.col("freight_class") != "") &
        (pl.col("weight_lbs") > 0) &
        (pl.col("sale_price") > 0) &
        pl.col("booked_date").is_not_null()
    )


__all__ = [
    "LEDGER_COLS",
    "LEDGER_SCHEMA",
    "empty_ledger",
    "ledger_from_bookings",
    "freight_class_expr",
    "zip_expr",
    "normalize_ledger",
]
