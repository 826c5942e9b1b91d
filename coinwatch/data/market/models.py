"""Market data models."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


@dataclass(frozen=True)
class Tick:
    """A single price observation from the feed."""

    symbol: str
    unit_price: Decimal


def parse_tick(symbol: Any, unit_price: Any) -> Optional[Tick]:
    """Parse a raw feed entry.

    Args:
        symbol: Raw symbol (e.g., 'btcusdt')
        unit_price: Numeric string or number (e.g., '60000.01')

    Returns:
        Tick with an uppercase symbol, or None if the entry is malformed
    """
    if not isinstance(symbol, str) or not symbol.strip():
        return None
    if isinstance(unit_price, bool) or unit_price is None:
        return None
    try:
        price = unit_price if isinstance(unit_price, Decimal) else Decimal(str(unit_price).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return Tick(symbol=symbol.strip().upper(), unit_price=price)
