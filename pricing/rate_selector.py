"""
Minimum Rate Selector

Picks the cheapest valid carrier-account quote for a shipment.

A cost qualifies only when it is a finite number strictly above zero.
Among equal lowest costs the first one encountered wins.
"""

import math
from collections.abc import Iterable, Mapping

import polars as pl

from .models import CarrierQuote


def _valid_cost(cost) -> bool:
    if cost is None or isinstance(cost, bool):
        return False
    try:
        number = float(cost)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


def select_minimum_rate(
    quotes: Mapping[str, float | None] | Iterable[CarrierQuote]
) -> CarrierQuote | None:
    """
    Lowest strictly-positive cost across accounts.

    Args:
        quotes: account -> cost (None for a failed quote), or CarrierQuote records

    Returns:
        CarrierQuote for the winning account, or None when no cost qualifies
    """
    if isinstance(quotes, Mapping):
        pairs = quotes.items()
    else:
        pairs = ((q.account, q.cost) for q in quotes)

    best_account, best_cost = None, None
    for account, cost in pairs:
        if not _valid_cost(cost):
            continue
        cost = float(cost)
        if best_cost is None or cost < best_cost:
            best_account, best_cost = account, cost

    if best_cost is None:
        return None
    return CarrierQuote(account=best_account, cost=best_cost)


def _as_cost(col: str) -> pl.Expr:
    return pl.col(col).cast(pl.Float64, strict=False)


def add_lowest_cost(df: pl.DataFrame, cost_cols: list[str]) -> pl.DataFrame:
    """
    Vectorised selector over a shipment DataFrame.

    Each cost column holds one account's cost (null = no quote). Adds
    lowest_cost and lowest_cost_account (column name with the "cost_" prefix
    stripped); both are null when no column holds a positive cost.
    """
    if not cost_cols:
        return df.with_columns([
            pl.lit(None, dtype=pl.Float64).alias("lowest_cost"),
            pl.lit(None, dtype=pl.Utf8).alias("lowest_cost_account"),
        ])

    # Non-positive, non-finite and non-numeric costs become null so they never win
    valid = [
        pl.when(_as_cost(c).is_finite() & (_as_cost(c) > 0))
        .then(_as_cost(c))
        .otherwise(None)
        for c in cost_cols
    ]
    df = df.with_columns(pl.min_horizontal(valid).alias("lowest_cost"))

    # First column equal to the minimum wins
    account = pl.lit(None, dtype=pl.Utf8)
    for c, expr in reversed(list(zip(cost_cols, valid))):
        account = (
            pl.when(expr == pl.col("lowest_cost"))
            .then(pl.lit(c.removeprefix("cost_")))
            .otherwise(account)
        )

    return df.with_columns(account.alias("lowest_cost_account"))


__all__ = [
    "select_minimum_rate",
    "add_lowest_cost",
]
