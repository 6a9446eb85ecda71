"""
Quote Price Calculator

Turns the lowest carrier cost into a customer price.

PRICING POLICY
--------------
Never price below the configured margin, never below recent market evidence
(historical average), never below the hard profit floor:

    1. standard_price = cost / (1 - margin / 100)
    2. final = max(standard_price, historical_price), or whichever exists
    3. final = cost + profit_floor when final - cost < profit_floor
    4. round to cents

Every QuoteDecision carries the intermediate values and a PriceReason.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from pathlib import Path

import polars as pl

from .config import PricingConfig
from .errors import DivisionByZero, InvalidBaseCost, InvalidMargin, NoQuoteAvailable, NoValidPriceSource
from .historical import match_historical_price
from .models import CarrierQuote, PriceReason, QuoteDecision, ShipmentRequest
from .rate_selector import select_minimum_rate


logger = logging.getLogger(__name__)


def standard_price(cost: float, margin: float) -> float:
    """
    Price that leaves `margin` percent of the price as profit.

    Raises:
        DivisionByZero: margin is exactly 100
        InvalidMargin: margin is otherwise outside [0, 100)
    """
    if margin == 100:
        raise DivisionByZero("Margin of 100% has no finite price")
    if not 0 <= margin < 100:
        raise InvalidMargin(f"Margin must be in [0, 100), got {margin}")
    return cost / (1 - margin / 100)


def calculate_quote_price(
    lowest_cost: float,
    margin: float | None,
    historical_price: float | None = None,
    profit_floor: float | None = None,
    account: str | None = None,
) -> QuoteDecision:
    """
    Price one shipment from its lowest cost.

    Args:
        lowest_cost: Cheapest valid carrier cost
        margin: Margin percent in [0, 100), None when no margin applies
        historical_price: Average of comparable bookings, None when no match
        profit_floor: Minimum dollar profit, None to disable
        account: Account that produced lowest_cost (kept for audit)

    Raises:
        InvalidBaseCost: lowest_cost is not a positive number
        DivisionByZero: margin == 100
        InvalidMargin: margin outside [0, 100)
        NoValidPriceSource: no margin and no usable historical price
    """
    if lowest_cost is None or not math.isfinite(lowest_cost) or lowest_cost <= 0:
        raise InvalidBaseCost(f"Base cost must be > 0, got {lowest_cost}")

    standard = standard_price(lowest_cost, margin) if margin is not None else None
    historical = historical_price if historical_price is not None and historical_price > 0 else None

    if standard is not None and historical is not None:
        if historical > standard:
            final, reason = historical, PriceReason.HISTORICAL
        else:
            final, reason = standard, PriceReason.STANDARD_MARGIN
    elif standard is not None:
        final, reason = standard, PriceReason.STANDARD_MARGIN_ONLY
    elif historical is not None:
        final, reason = historical, PriceReason.HISTORICAL_ONLY
    else:
        raise NoValidPriceSource("No margin configured and no historical price available")

    if profit_floor is not None and final - lowest_cost < profit_floor:
        final, reason = lowest_cost + profit_floor, PriceReason.PROFIT_FLOOR

    return QuoteDecision(
        account=account,
        lowest_cost=lowest_cost,
        margin=margin,
        standard_price=round(standard, 2) if standard is not None else None,
        historical_price=historical,
        final_price=round(final, 2),
        reason=reason,
    )


def quote_shipment(
    shipment: ShipmentRequest,
    account_costs: Mapping[str, float | None] | Iterable[CarrierQuote],
    ledger: pl.DataFrame | str | Path | None = None,
    margins: Mapping[str, float | None] | None = None,
    config: PricingConfig | None = None,
) -> QuoteDecision:
    """
    Select, match and price a single shipment.

    Args:
        shipment: Shipment being quoted
        account_costs: account -> cost (None = no quote), or CarrierQuote records
        ledger: Booking ledger for the historical price, optional
        margins: Per-account margin; accounts without one use config.default_margin
        config: Pricing configuration (defaults when omitted)

    Raises:
        NoQuoteAvailable: no account returned a positive cost
        plus everything calculate_quote_price raises
    """
    config = config or PricingConfig()

    best = select_minimum_rate(account_costs)
    if best is None:
        raise NoQuoteAvailable(
            f"No valid rate for {shipment.origin_zip} -> {shipment.destination_zip}"
        )

    margin = (margins or {}).get(best.account)
    if margin is None:
        margin = config.default_margin

    historical = match_historical_price(
        shipment.origin_zip,
        shipment.destination_zip,
        shipment.weight_lbs,
        shipment.freight_class,
        ledger,
        as_of=config.reference_date(),
        lookback_months=config.lookback_months,
        weight_tolerance=config.weight_tolerance,
    )

    decision = calculate_quote_price(
        best.cost,
        margin,
        historical_price=historical,
        profit_floor=config.profit_floor,
        account=best.account,
    )
    logger.debug(
        "Quoted %s -> %s: cost %.2f via %s, final %.2f (%s)",
        shipment.origin_zip, shipment.destination_zip,
        decision.lowest_cost, decision.account, decision.final_price, decision.reason.value,
    )
    return decision


__all__ = [
    "standard_price",
    "calculate_quote_price",
    "quote_shipment",
]
