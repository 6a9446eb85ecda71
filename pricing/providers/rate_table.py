"""
Rate Table Provider

Quotes from a carrier rate table (see pricing/data/loaders/rates.py).

    cost = max(weight_lbs / 100 * rate_per_cwt, minimum_charge) * (1 + fuel_rate)

The bracket is chosen by actual weight: weight_lbs_lower < weight <= weight_lbs_upper.
A shipment with no bracket or no rate for its class gets no quote.
"""

from pathlib import Path

import polars as pl

from ..data.loaders.rates import load_rate_table, to_long_rate_table
from ..models import AccountRecord, ShipmentRequest
from .base import QuoteProvider


class RateTableProvider(QuoteProvider):
    """
    Args:
        rates: Rate table DataFrame (wide or long) or path to a rate CSV
        fuel_rate: Fuel surcharge as a fraction of the linehaul (0.25 = 25%)
    """

    name = "rate_table"

    def __init__(self, rates: pl.DataFrame | str | Path, fuel_rate: float = 0.0):
        if isinstance(rates, (str, Path)):
            self.rates = load_rate_table(rates)
        else:
            self.rates = to_long_rate_table(rates)
        self.fuel_rate = fuel_rate

    @property
    def accounts(self) -> list[str]:
        return self.rates["account"].unique(maintain_order=True).to_list()

    def quote(self, account: AccountRecord, shipment: ShipmentRequest) -> float | None:
        bracket = self.rates.filter(
            (pl.col("account") == account.name) &
            (pl.col("freight_class") == shipment.freight_class) &
            (pl.col("weight_lbs_lower") < shipment.weight_lbs) &
            (pl.col("weight_lbs_upper") >= shipment.weight_lbs)
        )
        if bracket.is_empty():
            return None

        row = bracket.row(0, named=True)
        linehaul = max(shipment.weight_lbs / 100 * row["rate_per_cwt"], row["minimum_charge"])
        cost = round(linehaul * (1 + self.fuel_rate), 2)
        return cost if cost > 0 else None

    def quote_all(self, accounts: list[AccountRecord], shipment: ShipmentRequest) -> dict[str, float | None]:
        """account name -> cost (None = no quote) for every account."""
        return {account.name: self.quote(account, shipment) for account in accounts}


__all__ = [
    "RateTableProvider",
]
