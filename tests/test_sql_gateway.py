"""Tests for the SQL persistence gateway."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from coinwatch.core.errors import ConflictError, NotFoundError
from coinwatch.data.gateway.sql import SqlPersistenceGateway
from coinwatch.db.database import create_session_factory, init_db


@pytest.fixture
def db_engine():
    """Fresh in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def gateway(db_engine):
    """Gateway over the test database."""
    return SqlPersistenceGateway(create_session_factory(db_engine))


class TestSqlPersistenceGateway:
    """Tests for SqlPersistenceGateway."""

    def test_create_and_list(self, gateway):
        """Should store holdings and list them in id order."""
        async def scenario():
            await gateway.create("btcusdt", Decimal("0.5"))
            await gateway.create("ETHUSDT", Decimal("2"))
            return await gateway.list()

        holdings = asyncio.run(scenario())

        assert [(h.id, h.symbol) for h in holdings] == [(1, "BTCUSDT"), (2, "ETHUSDT")]
        assert holdings[0].quantity == Decimal("0.5")

    def test_duplicate_symbol_conflicts(self, gateway):
        """Should conflict on a duplicate symbol regardless of case."""
        async def scenario():
            await gateway.create("BTCUSDT", Decimal("1"))
            await gateway.create("btcusdt", Decimal("2"))

        with pytest.raises(ConflictError):
            asyncio.run(scenario())

    def test_rename_and_resize(self, gateway):
        """Should persist a new symbol and quantity."""
        async def scenario():
            coin = await gateway.create("BTCUSDT", Decimal("1"))
            await gateway.rename_symbol(coin.id, "BTC2")
            await gateway.set_quantity(coin.id, Decimal("0.125"))
            return await gateway.list()

        (holding,) = asyncio.run(scenario())

        assert holding.symbol == "BTC2"
        assert holding.quantity == Decimal("0.125")

    def test_rename_to_taken_symbol_conflicts(self, gateway):
        """Should conflict when renaming onto a stored symbol."""
        async def scenario():
            await gateway.create("BTCUSDT", Decimal("1"))
            eth = await gateway.create("ETHUSDT", Decimal("1"))
            await gateway.rename_symbol(eth.id, "btcusdt")

        with pytest.raises(ConflictError):
            asyncio.run(scenario())

    @pytest.mark.parametrize(
        "call",
        [
            lambda g: g.rename_symbol(99, "X"),
            lambda g: g.set_quantity(99, Decimal("1")),
            lambda g: g.delete(99),
        ],
    )
    def test_missing_id_not_found(self, gateway, call):
        """Should raise not found for an unknown id."""
        with pytest.raises(NotFoundError):
            asyncio.run(call(gateway))

    def test_delete_removes_row(self, gateway):
        """Should delete the stored row."""
        async def scenario():
            coin = await gateway.create("BTCUSDT", Decimal("1"))
            await gateway.delete(coin.id)
            return await gateway.list()

        assert asyncio.run(scenario()) == []

    def test_rate_storage(self, gateway):
        """Should start without a rate and keep the latest one set."""
        async def scenario():
            before = await gateway.get_rate()
            await gateway.set_rate(Decimal("83.52"))
            await gateway.set_rate(Decimal("90.00"))
            return before, await gateway.get_rate()

        before, after = asyncio.run(scenario())

        assert before is None
        assert after == Decimal("90.00")

    def test_values_at_storage_limits_round_trip(self, gateway, db_engine):
        """Should read back the exact quantity and rate through a separate gateway."""
        quantity = Decimal("12345.1234567891")

        async def scenario():
            created = await gateway.create("BTCUSDT", quantity)
            await gateway.set_rate(Decimal("83.123456"))
            reader = SqlPersistenceGateway(create_session_factory(db_engine))
            return created, await reader.list(), await reader.get_rate()

        created, (stored,), rate = asyncio.run(scenario())

        assert created.quantity == quantity
        assert stored.quantity == quantity
        assert rate == Decimal("83.123456")
