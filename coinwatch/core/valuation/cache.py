"""Per-symbol valuation cache."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from .models import ValuationEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValuationCache:
    """Keyed store of ValuationEntry objects.

    Keys are normalized (uppercase) symbols, the same keys the holdings
    registry uses. Every write replaces the whole entry in one assignment,
    so ``quote_total = last_unit_price * quantity`` and
    ``secondary_total = quote_total * rate`` are never observed half-applied.
    """

    def __init__(self):
        self._entries: Dict[str, ValuationEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._entries

    def __iter__(self) -> Iterator[ValuationEntry]:
        return iter(list(self._entries.values()))

    def get(self, symbol: str) -> Optional[ValuationEntry]:
        """Get the entry for a symbol, or None if it is not tracked."""
        return self._entries.get(symbol.upper())

    def snapshot(self) -> List[ValuationEntry]:
        """Point-in-time copy of all entries."""
        return list(self._entries.values())

    def track(self, symbol: str) -> ValuationEntry:
        """Create a fresh, unpriced entry for a symbol."""
        key = symbol.upper()
        entry = ValuationEntry(symbol=key)
        self._entries[key] = entry
        return entry

    def drop(self, symbol: str) -> None:
        """Forget a symbol. Missing symbols are ignored."""
        self._entries.pop(symbol.upper(), None)

    def rekey(self, old_symbol: str, new_symbol: str) -> ValuationEntry:
        """Move tracking from one symbol to another.

        The price observed for the old symbol belongs to a different market,
        so the new entry starts unpriced.
        """
        self._entries.pop(old_symbol.upper(), None)
        return self.track(new_symbol)

    def clear(self) -> None:
        self._entries.clear()

    def apply_price(
        self,
        symbol: str,
        unit_price: Decimal,
        quantity: Decimal,
        rate: Decimal,
    ) -> Optional[ValuationEntry]:
        """Record a tick and recompute both totals.

        Returns:
            The new entry, or None if the symbol is not tracked
        """
        key = symbol.upper()
        if key not in self._entries:
            return None
        quote_total = unit_price * quantity
        entry = ValuationEntry(
            symbol=key,
            last_unit_price=unit_price,
            quote_total=quote_total,
            secondary_total=quote_total * rate,
            priced_at=_utcnow(),
        )
        self._entries[key] = entry
        return entry

    def apply_quantity(self, symbol: str, quantity: Decimal, rate: Decimal) -> Optional[ValuationEntry]:
        """Recompute totals for a new quantity from the cached price."""
        key = symbol.upper()
        current = self._entries.get(key)
        if current is None:
            return None
        if current.last_unit_price is None:
            return current
        quote_total = current.last_unit_price * quantity
        entry = ValuationEntry(
            symbol=key,
            last_unit_price=current.last_unit_price,
            quote_total=quote_total,
            secondary_total=quote_total * rate,
            priced_at=current.priced_at,
        )
        self._entries[key] = entry
        return entry

    def apply_rate(self, rate: Decimal) -> int:
        """Recompute every secondary total from the existing quote totals.

        Returns:
            Number of entries recomputed
        """
        updated = 0
        for key, current in list(self._entries.items()):
            if current.quote_total is None:
                continue
            self._entries[key] = ValuationEntry(
                symbol=key,
                last_unit_price=current.last_unit_price,
                quote_total=current.quote_total,
                secondary_total=current.quote_total * rate,
                priced_at=current.priced_at,
            )
            updated += 1
        logger.debug(f"Recomputed secondary totals for {updated} entries at rate {rate}")
        return updated
