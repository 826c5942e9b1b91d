"""Typed exception hierarchy for valuation engine errors.

Callers can tell bad input apart from conflicts, missing records and
transient transport failures, and decide whether a retry makes sense.
"""

from __future__ import annotations

from typing import Optional


class CoinwatchError(Exception):
    """Base exception for all engine errors."""

    pass


class ValidationError(CoinwatchError):
    """Rejected input: empty symbol, negative or non-finite quantity, bad rate.

    Raised before any gateway call; no state has changed.
    """

    pass


class ConflictError(CoinwatchError):
    """Another holding already uses the requested symbol."""

    def __init__(self, message: str, symbol: str = ""):
        self.symbol = symbol
        super().__init__(message)


class NotFoundError(CoinwatchError):
    """The targeted holding no longer exists in the store."""

    def __init__(self, message: str, holding_id: Optional[int] = None):
        self.holding_id = holding_id
        super().__init__(message)


class TransportError(CoinwatchError):
    """Network failure talking to the persistence gateway or the price feed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        """Connection failures, 429 and 5xx are worth retrying."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
