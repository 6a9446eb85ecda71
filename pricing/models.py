"""
Pricing Records

Typed records passed between the pricing components.

    ShipmentRequest      - what is being quoted (immutable per lookup)
    CarrierQuote         - one account's cost, or an explicit "no quote"
    HistoricalBooking    - one row of the booking ledger
    AccountRecord        - a carrier account and its margin
    QuoteDecision        - priced shipment with an audit reason
    MarginAnalysisResult - required margin for one account over a batch
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path

from .data.reference.policy import FREIGHT_CLASSES
from .errors import InvalidInput


def _positive(value, label: str) -> float:
    """Coerce to float and require > 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{label} must be a number, got {value!r}") from None
    if not math.isfinite(number) or number <= 0:
        raise InvalidInput(f"{label} must be > 0, got {value!r}")
    return number


def normalize_freight_class(value) -> str:
    """
    Normalize a freight class to its NMFC code string.

    Accepts "70", 70, 70.0 and " 77.5 ". Anything outside FREIGHT_CLASSES
    raises InvalidInput.
    """
    text = str(value).strip()
    if text not in FREIGHT_CLASSES:
        try:
            number = float(text)
        except ValueError:
            raise InvalidInput(f"Unknown freight class {value!r}") from None
        text = f"{number:g}"
    if text not in FREIGHT_CLASSES:
        raise InvalidInput(f"Unknown freight class {value!r}")
    return text


# =============================================================================
# SHIPMENTS AND QUOTES
# =============================================================================

@dataclass(frozen=True)
class ShipmentRequest:
    """A shipment to be quoted. Dimensions are optional (inches)."""

    origin_zip: str
    destination_zip: str
    weight_lbs: float
    freight_class: str
    length_in: float | None = None
    width_in: float | None = None
    height_in: float | None = None

    def __post_init__(self):
        for label in ("origin_zip", "destination_zip"):
            value = str(getattr(self, label) or "").strip()
            if not value:
                raise InvalidInput(f"{label} is required")
            object.__setattr__(self, label, value)

        object.__setattr__(self, "weight_lbs", _positive(self.weight_lbs, "weight_lbs"))
        object.__setattr__(self, "freight_class", normalize_freight_class(self.freight_class))

        for label in ("length_in", "width_in", "height_in"):
            value = getattr(self, label)
            if value is not None:
                object.__setattr__(self, label, _positive(value, label))

    @property
    def cubic_in(self) -> float | None:
        if None in (self.length_in, self.width_in, self.height_in):
            return None
        return self.length_in * self.width_in * self.height_in


@dataclass(frozen=True)
class CarrierQuote:
    """
    One account's answer for one shipment.

    cost is None means "no quote" and reason says why. A present cost is
    always > 0; zero is never used to mean failure.
    """

    account: str
    cost: float | None
    reason: str | None = None

    def __post_init__(self):
        if self.cost is not None:
            object.__setattr__(self, "cost", _positive(self.cost, f"cost for {self.account}"))

    @property
    def ok(self) -> bool:
        return self.cost is not None

    @classmethod
    def no_quote(cls, account: str, reason: str = "no quote") -> "CarrierQuote":
        return cls(account=account, cost=None, reason=reason)


@dataclass(frozen=True)
class HistoricalBooking:
    """One booked shipment from the ledger."""

    origin_zip: str
    destination_zip: str
    weight_lbs: float
    freight_class: str
    sale_price: float
    booked_date: date


# =============================================================================
# ACCOUNTS
# =============================================================================

@dataclass(frozen=True)
class AccountRecord:
    """
    Carrier account as stored in its account file.

    Attributes:
        name    - Account identifier (file stem unless the file sets name=)
        margin  - Margin percent in [0, 100), None when the file has none
        carrier - Carrier the account belongs to, if the file says so
        fields  - Every other key in the file (credentials, endpoints, ...)
        path    - Backing file
    """

    name: str
    margin: float | None = None
    carrier: str | None = None
    fields: dict[str, str] = field(default_factory=dict, compare=False)
    path: Path | None = None


# =============================================================================
# DECISIONS AND RESULTS
# =============================================================================

class PriceReason(str, Enum):
    """Which source set the final price."""

    STANDARD_MARGIN = "standard_margin"            # margin price >= historical
    HISTORICAL = "historical"                      # historical above margin price
    STANDARD_MARGIN_ONLY = "standard_margin_only"  # no historical match
    HISTORICAL_ONLY = "historical_only"            # no margin configured
    PROFIT_FLOOR = "profit_floor"                  # raised to cost + floor


@dataclass(frozen=True)
class QuoteDecision:
    """Priced shipment with all intermediate values for audit."""

    account: str | None
    lowest_cost: float
    margin: float | None
    standard_price: float | None
    historical_price: float | None
    final_price: float
    reason: PriceReason

    @property
    def profit(self) -> float:
        return round(self.final_price - self.lowest_cost, 2)


@dataclass(frozen=True)
class SkipEvent:
    """A shipment that did not enter an account's average, and why."""

    account: str
    shipment_index: int
    reason: str


@dataclass(frozen=True)
class TargetSell:
    """Per-shipment sell price at a margin, with the profit it leaves."""

    base_cost: float
    margin: float
    target_sell: float
    base_profit: float
    comparison_cost: float | None = None
    comparison_profit: float | None = None

    @property
    def comparison_undercuts(self) -> bool | None:
        """True when the comparison account is cheaper than the base account."""
        if self.comparison_cost is None:
            return None
        return self.comparison_cost < self.base_cost

    @property
    def comparison_loses_money(self) -> bool | None:
        """True when the comparison cost is above the target sell price."""
        if self.comparison_profit is None:
            return None
        return self.comparison_profit < 0


@dataclass
class MarginAnalysisResult:
    """
    Required margin for one account over a batch of shipments.

    average_cost and required_margin stay None when nothing was processed.
    required_margin may be negative when costs already exceed the desired ASP.
    """

    account: str
    carrier: str | None
    desired_asp: float
    average_cost: float | None = None
    required_margin: float | None = None
    processed: int = 0
    skipped: int = 0
    skip_events: list[SkipEvent] = field(default_factory=list)

    @property
    def skip_reasons(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for event in self.skip_events:
            counts[event.reason] = counts.get(event.reason, 0) + 1
        return counts


@dataclass(frozen=True)
class MarginUpdate:
    """Outcome of persisting one account's margin during an apply pass."""

    account: str
    margin: float | None
    applied: bool
    error: str | None = None


__all__ = [
    "normalize_freight_class",
    "ShipmentRequest",
    "CarrierQuote",
    "HistoricalBooking",
    "AccountRecord",
    "PriceReason",
    "QuoteDecision",
    "SkipEvent",
    "TargetSell",
    "MarginAnalysisResult",
    "MarginUpdate",
]
