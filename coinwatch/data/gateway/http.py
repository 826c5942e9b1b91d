"""HTTP persistence gateway for the coins/rate REST API."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, List, Optional

import httpx

from coinwatch.core.errors import (
    ConflictError,
    CoinwatchError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from coinwatch.core.portfolio.models import Holding, to_decimal

from .base import PersistenceGateway

logger = logging.getLogger(__name__)


class HttpPersistenceGateway(PersistenceGateway):
    """Gateway talking to a remote holdings server.

    Endpoints:
        GET    /api/coins                 -> [{id, symbol, quantity}]
        POST   /api/coins                 -> 201 {id, symbol, quantity}
        PUT    /api/coins/{id}/symbol     {newSymbol}
        PUT    /api/coins/{id}/quantity   {quantity}
        DELETE /api/coins/{id}            -> 204
        GET    /api/inr                   -> {inrPrice}
        PUT    /api/inr                   {price}
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the gateway.

        Args:
            base_url: Server root, e.g. http://localhost:3036
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return f"http ({self.base_url})"

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.is_success:
            return response

        detail = _error_detail(response)
        status = response.status_code
        if status == 404:
            raise NotFoundError(detail)
        if status == 409:
            raise ConflictError(detail)
        if status in (400, 422):
            raise ValidationError(detail)
        logger.error(f"{method} {path} returned HTTP {status}: {detail}")
        raise TransportError(f"HTTP {status}: {detail}", status_code=status)

    async def list(self) -> List[Holding]:
        response = await self._request("GET", "/api/coins")
        return [_parse_holding(item) for item in response.json()]

    async def create(self, symbol: str, quantity: Decimal) -> Holding:
        response = await self._request(
            "POST",
            "/api/coins",
            json={"symbol": symbol, "quantity": str(quantity)},
        )
        return _parse_holding(response.json())

    async def rename_symbol(self, holding_id: int, new_symbol: str) -> None:
        await self._request(
            "PUT",
            f"/api/coins/{holding_id}/symbol",
            json={"newSymbol": new_symbol},
        )

    async def set_quantity(self, holding_id: int, quantity: Decimal) -> None:
        await self._request(
            "PUT",
            f"/api/coins/{holding_id}/quantity",
            json={"quantity": str(quantity)},
        )

    async def delete(self, holding_id: int) -> None:
        await self._request("DELETE", f"/api/coins/{holding_id}")

    async def get_rate(self) -> Optional[Decimal]:
        response = await self._request("GET", "/api/inr")
        value = response.json().get("inrPrice")
        if value is None:
            return None
        return to_decimal(value)

    async def set_rate(self, rate: Decimal) -> None:
        await self._request("PUT", "/api/inr", json={"price": str(rate)})


def _parse_holding(item: dict) -> Holding:
    """Build a Holding from a wire record.

    Raises:
        TransportError: If the record is malformed
    """
    try:
        return Holding(
            id=int(item["id"]),
            symbol=str(item["symbol"]).upper(),
            quantity=to_decimal(item["quantity"]),
        )
    except (KeyError, TypeError, ValueError, CoinwatchError) as e:
        raise TransportError(f"Malformed holding record {item!r}: {e}") from e


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)
