"""
Pricing Configuration

Explicit configuration passed into every pricing component. Defaults come
from pricing/data/reference/policy.py.
"""

import argparse
from dataclasses import dataclass, replace
from datetime import date

from .data.reference import policy
from .errors import InvalidInput, InvalidMargin


@dataclass(frozen=True)
class PricingConfig:
    """
    Attributes:
        MARGIN
            default_margin   - Margin percent for accounts without one (None = no default)
            profit_floor     - Minimum dollar profit per shipment (None = off)

        HISTORICAL MATCHING
            weight_tolerance - Fraction of requested weight (0.10 = +/- 10%)
            lookback_months  - Trailing booking window
            as_of            - Reference date for the window (None = today)

        BATCH ANALYSIS
            max_workers      - Concurrent quote calls
            quote_timeout    - Seconds to wait for one quote (None = wait forever)
    """

    default_margin: float | None = policy.DEFAULT_MARGIN
    profit_floor: float | None = policy.PROFIT_FLOOR

    weight_tolerance: float = policy.WEIGHT_TOLERANCE
    lookback_months: int = policy.LOOKBACK_MONTHS
    as_of: date | None = None

    max_workers: int = policy.MAX_WORKERS
    quote_timeout: float | None = policy.QUOTE_TIMEOUT

    def __post_init__(self):
        if self.default_margin is not None and not 0 <= self.default_margin < 100:
            raise InvalidMargin(f"default_margin must be in [0, 100), got {self.default_margin}")
        if self.profit_floor is not None and self.profit_floor < 0:
            raise InvalidInput(f"profit_floor must be >= 0, got {self.profit_floor}")
        if not 0 <= self.weight_tolerance < 1:
            raise InvalidInput(f"weight_tolerance must be in [0, 1), got {self.weight_tolerance}")
        if self.lookback_months < 1:
            raise InvalidInput(f"lookback_months must be >= 1, got {self.lookback_months}")
        if self.max_workers < 1:
            raise InvalidInput(f"max_workers must be >= 1, got {self.max_workers}")

    def reference_date(self) -> date:
        """Date the historical window is measured back from."""
        return self.as_of or date.today()

    def with_overrides(self, **changes) -> "PricingConfig":
        """Copy with the non-None values in changes applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PricingConfig":
        """Build from parsed script arguments (see add_config_arguments)."""
        as_of = date.fromisoformat(args.as_of) if getattr(args, "as_of", None) else None
        return cls().with_overrides(
            default_margin=getattr(args, "margin", None),
            profit_floor=getattr(args, "profit_floor", None),
            weight_tolerance=getattr(args, "weight_tolerance", None),
            lookback_months=getattr(args, "lookback_months", None),
            as_of=as_of,
            max_workers=getattr(args, "workers", None),
            quote_timeout=getattr(args, "timeout", None),
        )


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the shared pricing options to a script's argument parser."""
    group = parser.add_argument_group("pricing policy")
    group.add_argument("--margin", type=float,
                       help=f"Default margin percent (default: {policy.DEFAULT_MARGIN})")
    group.add_argument("--profit-floor", type=float,
                       help="Minimum dollar profit per shipment")
    group.add_argument("--weight-tolerance", type=float,
                       help=f"Historical weight band fraction (default: {policy.WEIGHT_TOLERANCE})")
    group.add_argument("--lookback-months", type=int,
                       help=f"Historical window in months (default: {policy.LOOKBACK_MONTHS})")
    group.add_argument("--as-of", type=str,
                       help="Reference date YYYY-MM-DD for the historical window (default: today)")


__all__ = [
    "PricingConfig",
    "add_config_arguments",
]
