"""
Quote Providers

Adapters that answer quote(account, shipment) -> cost | None.
"""

from .base import QuoteProvider, CallableProvider
from .rate_table import RateTableProvider

__all__ = [
    "QuoteProvider",
    "CallableProvider",
    "RateTableProvider",
]
