"""Exchange rate service."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from coinwatch.core.errors import ValidationError
from coinwatch.core.portfolio.models import RATE_PLACES, check_precision, to_decimal

from .cache import ValuationCache

if TYPE_CHECKING:
    from coinwatch.data.gateway.base import PersistenceGateway

logger = logging.getLogger(__name__)


def validate_rate(rate: Any, places: Optional[int] = RATE_PLACES) -> Decimal:
    """Validate an exchange rate (finite, strictly positive).

    Args:
        rate: Rate to validate
        places: Storage precision to enforce, or None for a rate already stored

    Raises:
        ValidationError: If the rate is invalid
    """
    value = to_decimal(rate)
    if not value.is_finite():
        raise ValidationError(f"Exchange rate must be finite, got {rate}")
    if value <= 0:
        raise ValidationError(f"Exchange rate must be positive, got {rate}")
    if places is not None:
        check_precision(value, places, "Exchange rate")
    return value


class CurrencyRateService:
    """Holds the quote-to-secondary exchange rate.

    A successful ``set`` fans out across the whole cache: every secondary
    total is recomputed from its existing quote total.

    Writes are serialized on a lock so the in-memory rate always matches the
    last rate the gateway stored.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        cache: ValuationCache,
        default_rate: Decimal = Decimal("83.52"),
    ):
        """Initialize the service.

        Args:
            gateway: Persistence gateway holding the stored rate
            cache: Valuation cache to recompute on change
            default_rate: Rate used until one has been stored
        """
        self.gateway = gateway
        self.cache = cache
        self._rate = validate_rate(default_rate)
        self._lock = asyncio.Lock()

    def get(self) -> Decimal:
        """Current exchange rate."""
        return self._rate

    async def load(self) -> Decimal:
        """Load the stored rate, keeping the default if none is stored."""
        async with self._lock:
            stored: Optional[Decimal] = await self.gateway.get_rate()
            if stored is None:
                logger.warning(f"No exchange rate stored, using default {self._rate}")
                return self._rate
            self._rate = validate_rate(stored, places=None)
            self.cache.apply_rate(self._rate)
        logger.info(f"Loaded exchange rate {self._rate}")
        return self._rate

    async def set(self, new_rate: Any) -> Decimal:
        """Persist a new rate and recompute every secondary total.

        Raises:
            ValidationError: If the rate is non-finite, not positive or too precise to store
            TransportError: If the gateway call fails (rate unchanged)
        """
        rate = validate_rate(new_rate)
        async with self._lock:
            await self.gateway.set_rate(rate)
            previous, self._rate = self._rate, rate
            updated = self.cache.apply_rate(rate)
        logger.info(f"Exchange rate changed {previous} -> {rate} ({updated} entries recomputed)")
        return rate
