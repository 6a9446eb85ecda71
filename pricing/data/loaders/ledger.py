"""
Load Booking Ledger

Reads historical bookings from a CSV export or from the data warehouse.
Both paths return a DataFrame already passed through normalize_ledger().
"""

import logging
from pathlib import Path
from typing import Optional

import polars as pl

from shared.database import pull_data

from ..ledger import empty_ledger, normalize_ledger


logger = logging.getLogger(__name__)

SQL_FILE = Path(__file__).parent / "sql" / "bookings.sql"

DEFAULT_LEDGER_TABLE = "brokerage.booked_shipments"


def load_ledger_csv(path: str | Path) -> pl.DataFrame:
    """
    Load a booking ledger CSV.

    Every column is read as text so a bad value only costs its own row.
    A missing file is not an error: it yields an empty ledger (no matches).

    Args:
        path: CSV with the LEDGER_COLS columns (extra columns are ignored)

    Returns:
        Normalized ledger DataFrame
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Ledger file %s not found, historical matching disabled", path)
        return empty_ledger()

    raw = pl.read_csv(path, infer_schema=False)
    ledger = normalize_ledger(raw)

    dropped = len(raw) - len(ledger)
    if dropped:
        logger.warning("Skipped %d malformed ledger row(s) in %s", dropped, path.name)
    logger.debug("Loaded %d ledger row(s) from %s", len(ledger), path)

    return ledger


def load_ledger_from_database(
    start_date: str,
    end_date: Optional[str] = None,
    limit: Optional[int] = None,
    table: str = DEFAULT_LEDGER_TABLE,
) -> pl.DataFrame:
    """
    Load booked shipments from the warehouse.

    Args:
        start_date: First booked date to include (YYYY-MM-DD)
        end_date: Last booked date to include (YYYY-MM-DD), optional
        limit: Max rows to return, optional (for testing)
        table: Fully qualified ledger table

    Returns:
        Normalized ledger DataFrame
    """
    end_date_filter = ""
    if end_date:
        end_date_filter = f"and b.booked_date <= '{end_date}'"

    limit_clause = ""
    if limit:
        limit_clause = f"limit {limit}"

    query = SQL_FILE.read_text().format(
        table=table,
        start_date_filter=f"and b.booked_date >= '{start_date}'",
        end_date_filter=end_date_filter,
        limit_clause=limit_clause,
    )

    return normalize_ledger(pull_data(query))


__all__ = [
    "load_ledger_csv",
    "load_ledger_from_database",
    "DEFAULT_LEDGER_TABLE",
    "SQL_FILE",
]
