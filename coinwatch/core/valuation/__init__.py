"""Derived valuation state: per-symbol cache, exchange rate and aggregate."""

from .models import AggregateTotal, FeedState, ValuationEntry, quantize
from .cache import ValuationCache
from .aggregate import AggregateComputer
from .rates import CurrencyRateService, validate_rate

__all__ = [
    "AggregateTotal",
    "FeedState",
    "ValuationEntry",
    "quantize",
    "ValuationCache",
    "AggregateComputer",
    "CurrencyRateService",
    "validate_rate",
]
