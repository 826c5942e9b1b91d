"""Tick batch sources for the price feed."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, List, Optional, Tuple

import httpx

from coinwatch.core.errors import TransportError

logger = logging.getLogger(__name__)

RawTick = Tuple[Any, Any]
"""Undecoded ``(symbol, unit_price)`` pair as delivered by a source."""


class TickSource(ABC):
    """Abstract transport delivering market-wide tick batches.

    ``stream()`` opens a new connection on every call, so the consumer can
    restart it after a failure. Implementations raise TransportError when the
    connection drops.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def stream(self) -> AsyncIterator[List[RawTick]]:
        """Open a connection and yield batches until it ends or fails."""
        pass


class BinanceTickerSource(TickSource):
    """Polls Binance's all-symbols ticker endpoint.

    ``GET /api/v3/ticker/price`` returns ``[{"symbol": "BTCUSDT", "price": "..."}, ...]``
    for every listed pair; each response is one batch.
    """

    def __init__(
        self,
        url: str = "https://api.binance.com/api/v3/ticker/price",
        poll_seconds: float = 2.0,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the source.

        Args:
            url: Ticker endpoint
            poll_seconds: Delay between polls
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.url = url
        self.poll_seconds = poll_seconds
        self.timeout = timeout
        self.transport = transport

    @property
    def name(self) -> str:
        return f"binance ({self.url})"

    async def stream(self) -> AsyncIterator[List[RawTick]]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                yield await self._poll(client)
                await asyncio.sleep(self.poll_seconds)

    async def _poll(self, client: httpx.AsyncClient) -> List[RawTick]:
        try:
            response = await client.get(self.url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Ticker request failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Ticker request failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Ticker response is not JSON: {e}") from e

        if not isinstance(payload, list):
            raise TransportError(f"Unexpected ticker payload type {type(payload).__name__}")

        return [
            (item.get("symbol"), item.get("price"))
            for item in payload
            if isinstance(item, dict)
        ]
