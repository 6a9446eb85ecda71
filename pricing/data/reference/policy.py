"""
Pricing Policy Defaults

Default margin policy and matching parameters.
Last updated: 2026-10-01

HOW THE PRICE IS BUILT
----------------------
standard_price = lowest_cost / (1 - margin / 100)
final_price    = max(standard_price, historical_price)
                 raised to lowest_cost + PROFIT_FLOOR when profit falls short

HISTORICAL MATCHING
-------------------
A past booking is comparable when it was booked within LOOKBACK_MONTHS,
shares the origin and destination ZIP3, has the same freight class and its
weight lies within +/- WEIGHT_TOLERANCE of the requested weight.

These are defaults only. Every component receives a PricingConfig built from
them (see pricing/config.py), scripts override them from the command line.
"""

DEFAULT_MARGIN = 15.0         # Percent, used when an account has no margin
WEIGHT_TOLERANCE = 0.10       # +/- 10% weight band
LOOKBACK_MONTHS = 12          # Trailing booking window
ZIP_PREFIX_LENGTH = 3         # ZIP3 lane matching

PROFIT_FLOOR = None           # Minimum dollar profit per shipment (None = off)

# Batch analysis
MAX_WORKERS = 4               # Concurrent quote calls (carrier rate limits)
QUOTE_TIMEOUT = 30.0          # Seconds to wait for a single quote

# NMFC freight classes
FREIGHT_CLASSES = (
    "50", "55", "60", "65", "70", "77.5", "85", "92.5", "100",
    "110", "125", "150", "175", "200", "250", "300", "400", "500",
)
