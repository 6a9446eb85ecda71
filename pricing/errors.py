"""
Pricing Errors

Exception taxonomy shared by every pricing component.

Single-shipment functions raise these. Batch functions (price_shipments,
analyze_accounts, apply_required_margins) catch them per item and record
the message so the rest of the batch keeps going.
"""


class PricingError(Exception):
    """Base class for all pricing failures."""


class InvalidInput(PricingError):
    """Malformed shipment, weight, freight class or cost."""


class InvalidBaseCost(InvalidInput):
    """Carrier cost is zero, negative or not a number."""


class NoQuoteAvailable(PricingError):
    """No account returned a usable quote for the shipment."""


class NoValidPriceSource(PricingError):
    """Neither a margin price nor a historical price could be computed."""


class DivisionByZero(PricingError):
    """Margin of exactly 100% makes cost / (1 - margin) undefined."""


class AccountNotFound(PricingError):
    """Account is unknown to the store or its backing file is gone."""


class InvalidMargin(PricingError):
    """Margin value outside [0, 100)."""


__all__ = [
    "PricingError",
    "InvalidInput",
    "InvalidBaseCost",
    "NoQuoteAvailable",
    "NoValidPriceSource",
    "DivisionByZero",
    "AccountNotFound",
    "InvalidMargin",
]
