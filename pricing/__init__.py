"""
Freight Pricing

Carrier rate selection, quote pricing and required-margin solving.

Components:
    - rate_selector:  cheapest valid account quote
    - historical:     average price of comparable past bookings
    - quote_price:    margin / historical / profit-floor reconciliation
    - margin_solver:  target sell and desired-ASP required margin
    - accounts:       account files and margin persistence
    - price_shipments: DataFrame batch pricing
"""

from .config import PricingConfig
from .errors import (
    PricingError,
    InvalidInput,
    InvalidBaseCost,
    NoQuoteAvailable,
    NoValidPriceSource,
    DivisionByZero,
    AccountNotFound,
    InvalidMargin,
)
from .models import (
    ShipmentRequest,
    CarrierQuote,
    HistoricalBooking,
    AccountRecord,
    PriceReason,
    QuoteDecision,
    MarginAnalysisResult,
)
from .rate_selector import select_minimum_rate
from .historical import match_historical_price, lookup_historical_prices
from .quote_price import calculate_quote_price, quote_shipment
from .margin_solver import (
    target_sell,
    required_margin,
    analyze_account,
    analyze_accounts,
    apply_required_margins,
)
from .accounts import AccountStore, load_accounts
from .price_shipments import price_shipments
from .version import VERSION

__all__ = [
    "PricingConfig",
    # Errors
    "PricingError",
    "InvalidInput",
    "InvalidBaseCost",
    "NoQuoteAvailable",
    "NoValidPriceSource",
    "DivisionByZero",
    "AccountNotFound",
    "InvalidMargin",
    # Records
    "ShipmentRequest",
    "CarrierQuote",
    "HistoricalBooking",
    "AccountRecord",
    "PriceReason",
    "QuoteDecision",
    "MarginAnalysisResult",
    # Operations
    "select_minimum_rate",
    "match_historical_price",
    "lookup_historical_prices",
    "calculate_quote_price",
    "quote_shipment",
    "target_sell",
    "required_margin",
    "analyze_account",
    "analyze_accounts",
    "apply_required_margins",
    "AccountStore",
    "load_accounts",
    "price_shipments",
    "VERSION",
]
