"""Portfolio aggregate computation and publication."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from .cache import ValuationCache
from .models import AggregateTotal

logger = logging.getLogger(__name__)

AggregateListener = Callable[[AggregateTotal], None]


class AggregateComputer:
    """Sums the valuation cache into a portfolio total.

    Unpriced entries contribute zero to both sums. The ``priced`` and
    ``tracked`` counts on the result show how much of the portfolio is valued.
    """

    def __init__(self, cache: ValuationCache):
        self.cache = cache
        self._listeners: List[AggregateListener] = []
        self._latest: Optional[AggregateTotal] = None
        self._publish_count = 0

    @property
    def latest(self) -> Optional[AggregateTotal]:
        """Most recently published total."""
        return self._latest

    @property
    def publish_count(self) -> int:
        return self._publish_count

    def compute_total(self) -> AggregateTotal:
        """Compute the current total. Pure read-then-reduce, no side effects."""
        entries = self.cache.snapshot()
        quote_sum = Decimal(0)
        secondary_sum = Decimal(0)
        priced = 0
        for entry in entries:
            if entry.quote_total is None:
                continue
            priced += 1
            quote_sum += entry.quote_total
            if entry.secondary_total is not None:
                secondary_sum += entry.secondary_total
        return AggregateTotal(
            quote_sum=quote_sum,
            secondary_sum=secondary_sum,
            priced=priced,
            tracked=len(entries),
            computed_at=datetime.now(timezone.utc),
        )

    def subscribe(self, listener: AggregateListener) -> Callable[[], None]:
        """Register a listener for published totals.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self) -> AggregateTotal:
        """Compute a total and hand it to every listener."""
        total = self.compute_total()
        self._latest = total
        self._publish_count += 1
        for listener in list(self._listeners):
            try:
                listener(total)
            except Exception:
                logger.exception("Aggregate listener failed")
        return total
