"""
Data Loaders

Loaders for the booking ledger (CSV or database) and carrier rate tables.
"""

from .ledger import (
    load_ledger_csv,
    load_ledger_from_database,
    DEFAULT_LEDGER_TABLE,
)
from .rates import load_rate_table, RATE_TABLE_COLS

__all__ = [
    "load_ledger_csv",
    "load_ledger_from_database",
    "DEFAULT_LEDGER_TABLE",
    "load_rate_table",
    "RATE_TABLE_COLS",
]
