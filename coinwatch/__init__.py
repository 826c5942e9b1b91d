"""Coinwatch - live valuation of a small set of tracked crypto holdings."""
