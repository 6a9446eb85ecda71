"""Calculator version, stamped on every priced shipment."""

VERSION = "2026.10.18"
