"""
Shared Utilities

Warehouse access and logging setup used across the pricing scripts.
"""
