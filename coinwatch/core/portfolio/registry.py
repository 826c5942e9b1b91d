"""Holdings registry - authoritative in-memory set of tracked holdings."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from coinwatch.core.errors import ConflictError, NotFoundError
from coinwatch.core.portfolio.models import Holding, normalize_symbol, validate_quantity
from coinwatch.core.valuation.cache import ValuationCache

if TYPE_CHECKING:
    from coinwatch.core.valuation.rates import CurrencyRateService
    from coinwatch.data.gateway.base import PersistenceGateway

logger = logging.getLogger(__name__)


class HoldingsRegistry:
    """Owns the tracked holdings and keeps the valuation cache keyed to them.

    Every mutation validates locally, round-trips through the gateway and
    only then commits to local state. A gateway failure leaves both the
    registry and the cache untouched.

    Mutations are serialized on a single lock so that a duplicate check made
    before a gateway call still holds when its result is committed.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        cache: ValuationCache,
        rates: CurrencyRateService,
    ):
        self.gateway = gateway
        self.cache = cache
        self.rates = rates
        self._by_id: Dict[int, Holding] = {}
        self._by_symbol: Dict[str, Holding] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._by_symbol

    def holdings(self) -> List[Holding]:
        """All holdings, in id order."""
        return sorted(self._by_id.values(), key=lambda h: h.id)

    def get(self, holding_id: int) -> Optional[Holding]:
        return self._by_id.get(holding_id)

    def lookup(self, symbol: str) -> Optional[Holding]:
        """Find the holding tracking a symbol (case-insensitive), in O(1)."""
        return self._by_symbol.get(symbol.upper())

    async def bootstrap(self) -> List[Holding]:
        """Replace local state with the holdings stored by the gateway."""
        async with self._lock:
            stored = await self.gateway.list()

            by_id: Dict[int, Holding] = {}
            by_symbol: Dict[str, Holding] = {}
            for holding in stored:
                key = holding.key
                if key in by_symbol:
                    logger.warning(
                        f"Duplicate stored symbol {key} (ids {by_symbol[key].id}, {holding.id}); "
                        f"tracking id {by_symbol[key].id} only"
                    )
                    continue
                by_id[holding.id] = holding
                by_symbol[key] = holding

            self._by_id = by_id
            self._by_symbol = by_symbol
            self.cache.clear()
            for key in by_symbol:
                self.cache.track(key)

            logger.info(f"Bootstrapped {len(by_id)} holding(s) from {self.gateway.name}")
            return self.holdings()

    async def add(self, symbol: Any, quantity: Any) -> Holding:
        """Add a holding.

        Raises:
            ValidationError: Empty symbol or invalid quantity (no gateway call)
            ConflictError: Symbol already tracked (no gateway call)
            TransportError: Gateway failure (nothing committed)
        """
        key = normalize_symbol(symbol)
        amount = validate_quantity(quantity)

        async with self._lock:
            if key in self._by_symbol:
                raise ConflictError(f"{key} is already tracked", symbol=key)

            created = await self.gateway.create(key, amount)
            holding = created.model_copy(update={"symbol": created.symbol.upper()})

            self._by_id[holding.id] = holding
            self._by_symbol[holding.key] = holding
            self.cache.track(holding.key)

        logger.info(f"Added {holding.symbol} x {holding.quantity} (id={holding.id})")
        return holding

    async def rename(self, holding_id: int, new_symbol: Any) -> Holding:
        """Move a holding to a new symbol.

        The cached valuation is dropped; the new symbol is unpriced until its
        first tick arrives.
        """
        key = normalize_symbol(new_symbol)

        async with self._lock:
            current = self._require(holding_id)
            owner = self._by_symbol.get(key)
            if owner is not None and owner.id != holding_id:
                raise ConflictError(f"{key} is already tracked", symbol=key)
            if current.key == key:
                return current

            await self.gateway.rename_symbol(holding_id, key)

            renamed = current.model_copy(update={"symbol": key})
            del self._by_symbol[current.key]
            self._by_symbol[key] = renamed
            self._by_id[holding_id] = renamed
            self.cache.rekey(current.key, key)

        logger.info(f"Renamed holding {holding_id}: {current.symbol} -> {key}")
        return renamed

    async def resize(self, holding_id: int, quantity: Any) -> Holding:
        """Change a holding's quantity and revalue it from the cached price."""
        amount = validate_quantity(quantity)

        async with self._lock:
            current = self._require(holding_id)

            await self.gateway.set_quantity(holding_id, amount)

            resized = current.model_copy(update={"quantity": amount})
            self._by_id[holding_id] = resized
            self._by_symbol[resized.key] = resized
            self.cache.apply_quantity(resized.key, amount, self.rates.get())

        logger.info(f"Resized {resized.symbol}: {current.quantity} -> {amount}")
        return resized

    async def remove(self, holding_id: int) -> Holding:
        """Delete a holding and its cached valuation."""
        async with self._lock:
            current = self._require(holding_id)

            await self.gateway.delete(holding_id)

            del self._by_id[holding_id]
            self._by_symbol.pop(current.key, None)
            self.cache.drop(current.key)

        logger.info(f"Removed {current.symbol} (id={holding_id})")
        return current

    def _require(self, holding_id: int) -> Holding:
        holding = self._by_id.get(holding_id)
        if holding is None:
            raise NotFoundError(f"Holding {holding_id} not found", holding_id=holding_id)
        return holding
