"""Pydantic schemas for portfolio holdings."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, Field

from coinwatch.core.errors import ValidationError

MAX_SYMBOL_LENGTH = 20

# Exact storage limits: coins.quantity and exchange_rate.rate keep this many
# fractional digits, and SQLite holds both as doubles.
QUANTITY_PLACES = 10
RATE_PLACES = 6
MAX_SIGNIFICANT_DIGITS = 15


def normalize_symbol(symbol: Any) -> str:
    """Normalize a symbol to its registry key (stripped, uppercase).

    Raises:
        ValidationError: If the symbol is empty or too long
    """
    if not isinstance(symbol, str):
        raise ValidationError(f"Symbol must be a string, got {type(symbol).__name__}")
    key = symbol.strip().upper()
    if not key:
        raise ValidationError("Symbol cannot be empty")
    if len(key) > MAX_SYMBOL_LENGTH:
        raise ValidationError(f"Symbol {key} is longer than {MAX_SYMBOL_LENGTH} characters")
    return key


def to_decimal(value: Any) -> Decimal:
    """Convert a user or wire value to Decimal without binary float artifacts.

    Raises:
        ValidationError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise ValidationError(f"Expected a number, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Expected a number, got {value!r}") from None


def check_precision(value: Decimal, places: int, label: str) -> Decimal:
    """Reject a value the store cannot hold exactly.

    Args:
        value: Finite decimal to check
        places: Maximum fractional digits
        label: Name used in the error message

    Raises:
        ValidationError: If the value is too large or has too many digits
    """
    if value == 0:
        return value
    if value.adjusted() >= MAX_SIGNIFICANT_DIGITS:
        raise ValidationError(f"{label} is too large, got {value}")
    _, digits, exponent = value.as_tuple()
    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    if exponent < -places:
        raise ValidationError(f"{label} allows at most {places} decimal places, got {value}")
    if len(digits) > MAX_SIGNIFICANT_DIGITS:
        raise ValidationError(
            f"{label} allows at most {MAX_SIGNIFICANT_DIGITS} significant digits, got {value}"
        )
    return value


def validate_quantity(quantity: Any) -> Decimal:
    """Validate a holding quantity (finite, non-negative, exactly storable).

    Raises:
        ValidationError: If the quantity is invalid
    """
    value = to_decimal(quantity)
    if not value.is_finite():
        raise ValidationError(f"Quantity must be finite, got {quantity}")
    if value < 0:
        raise ValidationError(f"Quantity must be non-negative, got {quantity}")
    return check_precision(value, QUANTITY_PLACES, "Quantity")


class Holding(BaseModel):
    """A tracked asset. Owned by the registry; replaced, never mutated."""

    id: int
    symbol: str
    quantity: Decimal

    class Config:
        frozen = True
        from_attributes = True

    @property
    def key(self) -> str:
        """Registry and cache key for this holding."""
        return self.symbol.upper()


class HoldingCreate(BaseModel):
    """Schema for creating a new holding."""

    symbol: str
    quantity: Decimal


class SymbolUpdate(BaseModel):
    """Schema for renaming a holding."""

    new_symbol: str = Field(..., alias="newSymbol")

    class Config:
        populate_by_name = True


class QuantityUpdate(BaseModel):
    """Schema for resizing a holding."""

    quantity: Decimal
