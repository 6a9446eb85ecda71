"""
Pricing Data

Ledger schema, reference policy and loaders.

Structure:
    - reference/: Static policy defaults
    - ledger.py:  Booking ledger column contract and normalisation
    - loaders/:   Ledger (CSV, warehouse) and rate table loaders
"""

from .reference.policy import (
    DEFAULT_MARGIN,
    WEIGHT_TOLERANCE,
    LOOKBACK_MONTHS,
    ZIP_PREFIX_LENGTH,
    PROFIT_FLOOR,
    FREIGHT_CLASSES,
)
from .ledger import (
    LEDGER_COLS,
    LEDGER_SCHEMA,
    empty_ledger,
    ledger_from_bookings,
    normalize_ledger,
)
from .loaders import (
    load_ledger_csv,
    load_ledger_from_database,
    load_rate_table,
)

__all__ = [
    # Policy defaults
    "DEFAULT_MARGIN",
    "WEIGHT_TOLERANCE",
    "LOOKBACK_MONTHS",
    "ZIP_PREFIX_LENGTH",
    "PROFIT_FLOOR",
    "FREIGHT_CLASSES",
    # Ledger
    "LEDGER_COLS",
    "LEDGER_SCHEMA",
    "empty_ledger",
    "ledger_from_bookings",
    "normalize_ledger",
    # Loaders
    "load_ledger_csv",
    "load_ledger_from_database",
    "load_rate_table",
]
