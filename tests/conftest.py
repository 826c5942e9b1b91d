"""Shared fixtures and fakes."""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from coinwatch.config import Settings
from coinwatch.core.engine import ValuationEngine
from coinwatch.core.errors import ConflictError, NotFoundError
from coinwatch.core.portfolio.models import Holding
from coinwatch.data.gateway.base import PersistenceGateway
from coinwatch.data.market.source import TickSource


class InMemoryGateway(PersistenceGateway):
    """Gateway storing holdings in a dict.

    Set ``fail_next`` to an exception to make the next call raise it. Set
    ``hold`` to an unset ``asyncio.Event`` to park every write until it is set;
    ``waiting`` counts the writes parked on it.
    """

    def __init__(self, holdings: Optional[List[Holding]] = None, rate: Optional[Decimal] = None):
        self.holdings: Dict[int, Holding] = {h.id: h for h in holdings or []}
        self.rate = rate
        self.calls: List[str] = []
        self.fail_next: Optional[Exception] = None
        self.closed = False
        self.hold: Optional[asyncio.Event] = None
        self.waiting = 0
        self._next_id = max(self.holdings, default=0) + 1

    @property
    def name(self) -> str:
        return "memory"

    def _enter(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    async def _pause(self) -> None:
        if self.hold is None:
            return
        self.waiting += 1
        try:
            await self.hold.wait()
        finally:
            self.waiting -= 1

    def _require(self, holding_id: int) -> Holding:
        if holding_id not in self.holdings:
            raise NotFoundError(f"Coin {holding_id} not found", holding_id=holding_id)
        return self.holdings[holding_id]

    async def list(self) -> List[Holding]:
        self._enter("list")
        return list(self.holdings.values())

    async def create(self, symbol: str, quantity: Decimal) -> Holding:
        self._enter("create")
        await self._pause()
        if any(h.symbol.upper() == symbol.upper() for h in self.holdings.values()):
            raise ConflictError(f"{symbol} already exists", symbol=symbol)
        holding = Holding(id=self._next_id, symbol=symbol, quantity=quantity)
        self.holdings[holding.id] = holding
        self._next_id += 1
        return holding

    async def rename_symbol(self, holding_id: int, new_symbol: str) -> None:
        self._enter("rename_symbol")
        await self._pause()
        current = self._require(holding_id)
        self.holdings[holding_id] = current.model_copy(update={"symbol": new_symbol})

    async def set_quantity(self, holding_id: int, quantity: Decimal) -> None:
        self._enter("set_quantity")
        await self._pause()
        current = self._require(holding_id)
        self.holdings[holding_id] = current.model_copy(update={"quantity": quantity})

    async def delete(self, holding_id: int) -> None:
        self._enter("delete")
        await self._pause()
        self._require(holding_id)
        del self.holdings[holding_id]

    async def get_rate(self) -> Optional[Decimal]:
        self._enter("get_rate")
        return self.rate

    async def set_rate(self, rate: Decimal) -> None:
        self._enter("set_rate")
        await self._pause()
        self.rate = rate

    async def close(self) -> None:
        self.closed = True


async def wait_until(predicate, timeout=2.0):
    """Yield to the loop until ``predicate()`` holds."""

    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


class ScriptedSource(TickSource):
    """Tick source replaying scripted connections.

    Each element of ``connections`` is one call to ``stream()``: a list of
    batches to yield, optionally ending with an exception to raise. Once the
    script runs out, ``stream()`` waits until cancelled.
    """

    def __init__(self, connections):
        self.connections = list(connections)
        self.opened = 0

    @property
    def name(self) -> str:
        return "scripted"

    async def stream(self):
        self.opened += 1
        if not self.connections:
            await asyncio.Event().wait()
            return
        for item in self.connections.pop(0):
            if isinstance(item, Exception):
                raise item
            yield item
            await asyncio.sleep(0)


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = dict(
        database_url="sqlite://",
        gateway_url="",
        default_exchange_rate=Decimal("83.52"),
        feed_backoff_initial_seconds=0.01,
        feed_backoff_max_seconds=0.05,
        feed_stable_seconds=60,
        recompute_interval_seconds=5,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
def engine(gateway, settings):
    return ValuationEngine(gateway, source=ScriptedSource([]), settings=settings)

