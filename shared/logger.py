"""
Logging Setup

Library modules log through logging.getLogger(__name__) and never configure
handlers. Scripts call configure_logging() once at startup.
"""

import logging
import sys


LOG_FORMAT = "%(levelname)s | %(asctime)s | %(name)s | %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Send pricing and shared logs to stderr (DEBUG when verbose, else INFO)."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    for name in ("pricing", "shared"):
        logger = logging.getLogger(name)
        # Prevent duplicate handlers when called more than once
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
