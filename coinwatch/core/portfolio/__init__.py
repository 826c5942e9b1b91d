"""Holdings tracking."""

from .models import (
    Holding,
    HoldingCreate,
    SymbolUpdate,
    QuantityUpdate,
    normalize_symbol,
    validate_quantity,
)
from .repository import CoinRepository, RateRepository
from .registry import HoldingsRegistry

__all__ = [
    "Holding",
    "HoldingCreate",
    "SymbolUpdate",
    "QuantityUpdate",
    "normalize_symbol",
    "validate_quantity",
    "CoinRepository",
    "RateRepository",
    "HoldingsRegistry",
]
