"""
Pricing Reference Data

Static policy defaults (margin, matching window, batch limits).
"""
