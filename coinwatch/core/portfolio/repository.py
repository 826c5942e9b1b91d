"""Repositories for stored holdings and the exchange rate."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from coinwatch.db.models import RATE_ROW_ID, Coin, ExchangeRate


class CoinRepository:
    """Repository for Coin CRUD operations."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_all(self) -> List[Coin]:
        """Get all stored coins, oldest first."""
        return self.db.query(Coin).order_by(Coin.id).all()

    def get_by_id(self, coin_id: int) -> Optional[Coin]:
        """Get a coin by ID."""
        return self.db.query(Coin).filter_by(id=coin_id).first()

    def get_by_symbol(self, symbol: str) -> Optional[Coin]:
        """Get a coin by symbol (case-insensitive).

        Args:
            symbol: Coin symbol

        Returns:
            Coin or None
        """
        return (
            self.db.query(Coin)
            .filter(func.upper(Coin.symbol) == symbol.upper())
            .first()
        )

    def create(self, symbol: str, quantity: Decimal) -> Coin:
        """Create a new coin.

        Args:
            symbol: Coin symbol (stored uppercase)
            quantity: Quantity held

        Returns:
            Created coin
        """
        coin = Coin(symbol=symbol.upper(), quantity=quantity)
        self.db.add(coin)
        self.db.flush()
        return coin

    def rename(self, coin_id: int, symbol: str) -> Optional[Coin]:
        """Change a coin's symbol.

        Returns:
            Updated coin or None if not found
        """
        coin = self.get_by_id(coin_id)
        if not coin:
            return None
        coin.symbol = symbol.upper()
        self.db.flush()
        return coin

    def set_quantity(self, coin_id: int, quantity: Decimal) -> Optional[Coin]:
        """Change a coin's quantity.

        Returns:
            Updated coin or None if not found

        Raises:
            ValueError: If quantity is negative
        """
        if quantity < 0:
            raise ValueError(f"Quantity must be non-negative, got {quantity}")
        coin = self.get_by_id(coin_id)
        if not coin:
            return None
        coin.quantity = quantity
        self.db.flush()
        return coin

    def delete(self, coin_id: int) -> bool:
        """Delete a coin.

        Returns:
            True if deleted, False if not found
        """
        coin = self.get_by_id(coin_id)
        if not coin:
            return False
        self.db.delete(coin)
        self.db.flush()
        return True


class RateRepository:
    """Repository for the single stored exchange rate."""

    def __init__(self, db: Session):
        self.db = db

    def get(self) -> Optional[Decimal]:
        row = self.db.query(ExchangeRate).filter_by(id=RATE_ROW_ID).first()
        return Decimal(row.rate) if row else None

    def set(self, rate: Decimal) -> Decimal:
        """Store the rate, creating the row on first write."""
        self.db.merge(ExchangeRate(id=RATE_ROW_ID, rate=rate))
        self.db.flush()
        return rate
