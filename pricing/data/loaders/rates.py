"""
Load Carrier Rate Tables

Rate tables are kept in wide CSV format, one column per freight class:

    account,weight_lbs_lower,weight_lbs_upper,minimum_charge,class_50,class_70,...
    acme_ltl,0,500,95.00,28.10,34.55,...
    acme_ltl,500,1000,95.00,24.80,30.20,...

Rates are dollars per hundredweight (CWT). Weight brackets are exclusive at
the lower bound and inclusive at the upper bound.
"""

from pathlib import Path

import polars as pl

from ..ledger import freight_class_expr


RATE_TABLE_COLS = [
    "account",
    "weight_lbs_lower",
    "weight_lbs_upper",
    "minimum_charge",
    "freight_class",
    "rate_per_cwt",
]

_INDEX_COLS = ["account", "weight_lbs_lower", "weight_lbs_upper", "minimum_charge"]


def load_rate_table(path: str | Path) -> pl.DataFrame:
    """
    Load a rate table in long format, ready for joining.

    Accepts either the wide format above or an already-long file with
    freight_class and rate_per_cwt columns.

    Returns:
        DataFrame with RATE_TABLE_COLS
    """
    rates = pl.read_csv(Path(path), schema_overrides={"account": pl.Utf8})
    return to_long_rate_table(rates)


def to_long_rate_table(rates: pl.DataFrame) -> pl.DataFrame:
    """Normalize a wide or long rate table to RATE_TABLE_COLS."""
    if "minimum_charge" not in rates.columns:
        rates = rates.with_columns(pl.lit(0.0).alias("minimum_charge"))

    class_cols = [c for c in rates.columns if c.startswith("class_")]
    if class_cols:
        rates = (
            rates
            .unpivot(
                index=_INDEX_COLS,
                on=class_cols,
                variable_name="_class_col",
                value_name="rate_per_cwt",
            )
            .with_columns(
                pl.col("_class_col").str.replace("class_", "").alias("freight_class")
            )
            .drop("_class_col")
        )

    missing = [c for c in RATE_TABLE_COLS if c not in rates.columns]
    if missing:
        raise ValueError(f"Rate table is missing column(s): {', '.join(missing)}")

    return (
        rates
        .with_columns([
            pl.col("account").cast(pl.Utf8),
            freight_class_expr(rates).alias("freight_class"),
            pl.col("weight_lbs_lower").cast(pl.Float64),
            pl.col("weight_lbs_upper").cast(pl.Float64),
            pl.col("minimum_charge").cast(pl.Float64).fill_null(0.0),
            pl.col("rate_per_cwt").cast(pl.Float64, strict=False),
        ])
        .filter(pl.col("rate_per_cwt").is_not_null())
        .select(RATE_TABLE_COLS)
    )


__all__ = [
    "RATE_TABLE_COLS",
    "load_rate_table",
    "to_long_rate_table",
]
