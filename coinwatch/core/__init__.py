"""Core valuation logic."""
