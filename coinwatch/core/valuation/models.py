"""Valuation data models and presentation rounding."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional


class FeedState(str, Enum):
    """Price feed connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"


@dataclass(frozen=True)
class ValuationEntry:
    """Derived value state for one tracked symbol.

    Entries are immutable; every update swaps in a new entry so the
    price and both totals always change together.
    """

    symbol: str
    last_unit_price: Optional[Decimal] = None
    quote_total: Optional[Decimal] = None
    secondary_total: Optional[Decimal] = None
    priced_at: Optional[datetime] = None

    @property
    def is_priced(self) -> bool:
        """Whether a tick has been observed for this symbol."""
        return self.last_unit_price is not None


@dataclass(frozen=True)
class AggregateTotal:
    """Portfolio total in both currencies.

    Entries without a price contribute zero to both sums; ``priced`` and
    ``tracked`` let callers tell a partial total from a complete one.
    """

    quote_sum: Decimal
    secondary_sum: Decimal
    priced: int
    tracked: int
    computed_at: datetime

    @property
    def is_complete(self) -> bool:
        return self.priced == self.tracked


def quantize(value: Optional[Decimal], places: int) -> Optional[Decimal]:
    """Round a value for display (half-up). ``None`` passes through."""
    if value is None:
        return None
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
