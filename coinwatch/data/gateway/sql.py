"""SQLAlchemy-backed persistence gateway."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coinwatch.core.errors import ConflictError, NotFoundError, TransportError
from coinwatch.core.portfolio.models import Holding
from coinwatch.core.portfolio.repository import CoinRepository, RateRepository
from coinwatch.db.database import get_db

from .base import PersistenceGateway

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_holding(coin) -> Holding:
    return Holding(id=coin.id, symbol=coin.symbol, quantity=Decimal(coin.quantity))


class SqlPersistenceGateway(PersistenceGateway):
    """Gateway over a local SQL database.

    Session work is blocking, so each call runs in a worker thread and the
    event loop keeps serving ticks meanwhile.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """Initialize the gateway.

        Args:
            session_factory: Session factory (defaults to the configured database)
        """
        self.session_factory = session_factory

    @property
    def name(self) -> str:
        return "sql"

    async def _run(self, work: Callable[[Session], T]) -> T:
        def _in_session() -> T:
            with get_db(self.session_factory) as db:
                return work(db)

        try:
            return await asyncio.to_thread(_in_session)
        except IntegrityError as e:
            raise ConflictError(f"Store rejected write: {e.orig}") from e
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise TransportError(f"Database error: {e}") from e

    async def list(self) -> List[Holding]:
        return await self._run(lambda db: [_to_holding(c) for c in CoinRepository(db).get_all()])

    async def create(self, symbol: str, quantity: Decimal) -> Holding:
        def _create(db: Session) -> Holding:
            repo = CoinRepository(db)
            if repo.get_by_symbol(symbol):
                raise ConflictError(f"{symbol.upper()} already exists", symbol=symbol.upper())
            coin = repo.create(symbol, quantity)
            db.refresh(coin)
            return _to_holding(coin)

        return await self._run(_create)

    async def rename_symbol(self, holding_id: int, new_symbol: str) -> None:
        def _rename(db: Session) -> None:
            repo = CoinRepository(db)
            existing = repo.get_by_symbol(new_symbol)
            if existing and existing.id != holding_id:
                raise ConflictError(f"{new_symbol.upper()} already exists", symbol=new_symbol.upper())
            if repo.rename(holding_id, new_symbol) is None:
                raise NotFoundError(f"Coin {holding_id} not found", holding_id=holding_id)

        await self._run(_rename)

    async def set_quantity(self, holding_id: int, quantity: Decimal) -> None:
        def _set_quantity(db: Session) -> None:
            if CoinRepository(db).set_quantity(holding_id, quantity) is None:
                raise NotFoundError(f"Coin {holding_id} not found", holding_id=holding_id)

        await self._run(_set_quantity)

    async def delete(self, holding_id: int) -> None:
        def _delete(db: Session) -> None:
            if not CoinRepository(db).delete(holding_id):
                raise NotFoundError(f"Coin {holding_id} not found", holding_id=holding_id)

        await self._run(_delete)

    async def get_rate(self) -> Optional[Decimal]:
        return await self._run(lambda db: RateRepository(db).get())

    async def set_rate(self, rate: Decimal) -> None:
        await self._run(lambda db: RateRepository(db).set(rate))
