"""SQLAlchemy ORM models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()

RATE_ROW_ID = 1


def utcnow() -> datetime:
    """Get current UTC timestamp."""
    return datetime.utcnow()


class Coin(Base):
    """Stored holding."""

    __tablename__ = "coins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False, unique=True)
    # Fractional holdings; the legacy schema stored whole numbers only.
    # Inputs are limited to QUANTITY_PLACES and MAX_SIGNIFICANT_DIGITS so SQLite keeps them exact.
    quantity = Column(Numeric(28, 10), nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Coin(id={self.id}, symbol={self.symbol}, quantity={self.quantity})>"


class ExchangeRate(Base):
    """Single-row table holding the secondary currency rate."""

    __tablename__ = "exchange_rate"

    id = Column(Integer, primary_key=True, default=RATE_ROW_ID)
    rate = Column(Numeric(21, 6), nullable=False)  # Inputs are limited to RATE_PLACES
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<ExchangeRate(rate={self.rate})>"
