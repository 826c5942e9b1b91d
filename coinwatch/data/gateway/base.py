"""Persistence gateway abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from coinwatch.core.portfolio.models import Holding


class PersistenceGateway(ABC):
    """Abstract base class for durable holdings and exchange rate storage.

    Every call is a coroutine. Implementations translate their native
    failures into the ``coinwatch.core.errors`` hierarchy:

    - NotFoundError when the target id does not exist
    - ConflictError when a symbol is already taken
    - ValidationError when the store rejects the input
    - TransportError for network or storage failures
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable gateway name for logs."""
        pass

    @abstractmethod
    async def list(self) -> List[Holding]:
        """Fetch every stored holding."""
        pass

    @abstractmethod
    async def create(self, symbol: str, quantity: Decimal) -> Holding:
        """Store a new holding.

        Args:
            symbol: Normalized symbol
            quantity: Validated quantity

        Returns:
            Stored holding with its assigned id
        """
        pass

    @abstractmethod
    async def rename_symbol(self, holding_id: int, new_symbol: str) -> None:
        """Change the symbol of a stored holding."""
        pass

    @abstractmethod
    async def set_quantity(self, holding_id: int, quantity: Decimal) -> None:
        """Change the quantity of a stored holding."""
        pass

    @abstractmethod
    async def delete(self, holding_id: int) -> None:
        """Delete a stored holding."""
        pass

    @abstractmethod
    async def get_rate(self) -> Optional[Decimal]:
        """Fetch the stored exchange rate, or None if none has been stored."""
        pass

    @abstractmethod
    async def set_rate(self, rate: Decimal) -> None:
        """Store the exchange rate."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
