"""Market price feed (sources, tick parsing, consumer)."""

from .models import Tick, parse_tick
from .source import BinanceTickerSource, TickSource
from .feed import ExponentialBackoff, PriceFeedConsumer

__all__ = [
    "Tick",
    "parse_tick",
    "TickSource",
    "BinanceTickerSource",
    "ExponentialBackoff",
    "PriceFeedConsumer",
]
