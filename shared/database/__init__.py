"""
Warehouse Connection

Read-only access to the Redshift warehouse that holds booked shipments.
Shared by every loader that pulls from the database.

Connection settings are read by DatabaseSettings from the environment (or a
.env file) with the PRICING_DB_ prefix:

    PRICING_DB_HOST, PRICING_DB_PORT, PRICING_DB_NAME, PRICING_DB_USER,
    PRICING_DB_PASSWORD (falls back to pass.txt next to this file)
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import polars as pl
import redshift_connector
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


PASSWORD_FILE = Path(__file__).parent / "pass.txt"


class DatabaseSettings(BaseSettings):
    """Redshift connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="PRICING_DB_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: Optional[str] = None
    port: int = Field(5439, description="Redshift port")
    name: Optional[str] = Field(None, description="Database name")
    user: Optional[str] = None
    password: Optional[SecretStr] = None


@lru_cache(maxsize=1)
def get_settings() -> DatabaseSettings:
    return DatabaseSettings()


# Global connection object
_connection: Optional[redshift_connector.Connection] = None


# ============================================================================
# CONNECTION MANAGEMENT
# ============================================================================

def _read_password(settings: DatabaseSettings) -> str:
    """
    Password from settings, or the first non-empty line of pass.txt.

    Raises:
        RuntimeError: If neither is available
    """
    if settings.password is not None and settings.password.get_secret_value():
        return settings.password.get_secret_value()

    if PASSWORD_FILE.exists():
        with open(PASSWORD_FILE, "r", encoding="utf-8") as f:
            for line in f:
                val = line.strip()
                if val:
                    return val

    raise RuntimeError(
        f"Password not found. Set PRICING_DB_PASSWORD or create 'pass.txt' in {PASSWORD_FILE.parent}"
    )


def get_connection(force_new: bool = False) -> redshift_connector.Connection:
    """
    Get or create the warehouse connection.

    Args:
        force_new: Close any existing connection and open a fresh one

    Raises:
        RuntimeError: If settings are incomplete or the connection fails
    """
    global _connection

    if force_new:
        close_connection()

    if _connection is not None:
        return _connection

    settings = get_settings()
    missing = [f for f in ("host", "name", "user") if not getattr(settings, f)]
    if missing:
        raise RuntimeError(
            "Database setting(s) not set: " + ", ".join(f"PRICING_DB_{f.upper()}" for f in missing)
        )

    try:
        _connection = redshift_connector.connect(
            host=settings.host,
            port=settings.port,
            database=settings.name,
            user=settings.user,
            password=_read_password(settings),
        )
    except redshift_connector.Error as e:
        raise RuntimeError(f"Failed to create database connection: {e}") from e

    return _connection


def close_connection() -> None:
    """Close the active connection if one exists."""
    global _connection

    if _connection is None:
        return
    try:
        _connection.close()
    except redshift_connector.Error:
        pass
    finally:
        _connection = None


# ============================================================================
# DATA OPERATIONS
# ============================================================================

def pull_data(query: str) -> pl.DataFrame:
    """
    Run a SELECT and return the rows as a Polars DataFrame.

    Raises:
        RuntimeError: If query execution fails

    Example:
        df = pull_data("SELECT * FROM brokerage.booked_shipments LIMIT 10")
    """
    conn = get_connection()

    try:
        cursor = conn.cursor()
        cursor.execute(query)
        columns = [desc[0] for desc in cursor.description]
        rows = cursor.fetchall()
        cursor.close()
    except redshift_connector.Error as e:
        raise RuntimeError(f"Error executing query: {e}") from e

    return pl.DataFrame(rows, schema=columns, orient="row")


__all__ = [
    "DatabaseSettings",
    "get_settings",
    "get_connection",
    "close_connection",
    "pull_data",
]
