"""Live valuation engine - wires holdings, prices and the exchange rate together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from coinwatch.config import Settings, get_settings
from coinwatch.core.portfolio.models import Holding
from coinwatch.core.portfolio.registry import HoldingsRegistry
from coinwatch.core.scheduler import AggregateScheduler
from coinwatch.core.valuation.aggregate import AggregateComputer
from coinwatch.core.valuation.cache import ValuationCache
from coinwatch.core.valuation.models import AggregateTotal, FeedState, ValuationEntry
from coinwatch.core.valuation.rates import CurrencyRateService
from coinwatch.data.gateway.base import PersistenceGateway
from coinwatch.data.market.feed import ExponentialBackoff, PriceFeedConsumer
from coinwatch.data.market.source import BinanceTickerSource, TickSource

logger = logging.getLogger(__name__)


class SortOrder(str, Enum):
    """Orderings for the holdings list view."""

    ALPHABETICAL = "alphabetical"
    ALPHABETICAL_DESC = "alphabetical_desc"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


@dataclass(frozen=True)
class HoldingValuation:
    """A holding paired with its current valuation."""

    holding: Holding
    valuation: Optional[ValuationEntry]

    @property
    def unit_price(self) -> Optional[Decimal]:
        return self.valuation.last_unit_price if self.valuation else None


class ValuationEngine:
    """Owns the valuation components and exposes the query surface.

    All state lives on one event loop. Ticks are applied synchronously
    between awaits, and registry mutations commit only after the gateway
    confirms, so readers never see a half-applied update.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        source: Optional[TickSource] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the engine.

        Args:
            gateway: Persistence gateway for holdings and the rate
            source: Tick source (defaults to the configured Binance ticker)
            settings: Settings override (defaults to environment)
        """
        self.settings = settings or get_settings()
        self.gateway = gateway
        self.source = source or BinanceTickerSource(
            url=self.settings.feed_url,
            poll_seconds=self.settings.feed_poll_seconds,
        )

        self.cache = ValuationCache()
        self.rates = CurrencyRateService(gateway, self.cache, self.settings.default_exchange_rate)
        self.registry = HoldingsRegistry(gateway, self.cache, self.rates)
        self.aggregate = AggregateComputer(self.cache)
        self.feed = PriceFeedConsumer(
            self.source,
            self.registry,
            self.cache,
            self.rates,
            backoff=ExponentialBackoff(
                initial=self.settings.feed_backoff_initial_seconds,
                maximum=self.settings.feed_backoff_max_seconds,
            ),
            stable_seconds=self.settings.feed_stable_seconds,
        )
        self.scheduler = AggregateScheduler(self.aggregate, self.settings.recompute_interval_seconds)

        self._feed_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def bootstrap(self) -> AggregateTotal:
        """Load the rate and the holdings from the gateway."""
        await self.rates.load()
        await self.registry.bootstrap()
        return self.aggregate.publish()

    async def start(self, with_feed: bool = True, with_scheduler: bool = True) -> None:
        """Bootstrap, then launch the feed task and the periodic refresh."""
        await self.bootstrap()
        if with_feed and self._feed_task is None:
            self._feed_task = asyncio.create_task(self.feed.run(), name="price-feed")
        if with_scheduler:
            self.scheduler.start()
        logger.info(f"Valuation engine started with {len(self.registry)} holding(s)")

    async def stop(self) -> None:
        """Stop the feed and the scheduler. Last-known valuations are kept."""
        self.scheduler.stop()
        if self._feed_task is not None:
            self.feed.stop()
            self._feed_task.cancel()
            try:
                await self._feed_task
            except asyncio.CancelledError:
                pass
            self._feed_task = None
        logger.info("Valuation engine stopped")

    async def close(self) -> None:
        await self.stop()
        await self.gateway.close()

    async def __aenter__(self) -> "ValuationEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_holding(self, symbol: Any, quantity: Any) -> Holding:
        holding = await self.registry.add(symbol, quantity)
        self.aggregate.publish()
        return holding

    async def rename_holding(self, holding_id: int, new_symbol: Any) -> Holding:
        holding = await self.registry.rename(holding_id, new_symbol)
        self.aggregate.publish()
        return holding

    async def resize_holding(self, holding_id: int, quantity: Any) -> Holding:
        holding = await self.registry.resize(holding_id, quantity)
        self.aggregate.publish()
        return holding

    async def remove_holding(self, holding_id: int) -> Holding:
        holding = await self.registry.remove(holding_id)
        self.aggregate.publish()
        return holding

    async def set_rate(self, rate: Any) -> Decimal:
        new_rate = await self.rates.set(rate)
        self.aggregate.publish()
        return new_rate

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_holdings(self) -> List[Holding]:
        return self.registry.holdings()

    def get_valuation(self, symbol: str) -> Optional[ValuationEntry]:
        return self.cache.get(symbol)

    def get_aggregate_total(self) -> AggregateTotal:
        return self.aggregate.compute_total()

    def get_feed_state(self) -> FeedState:
        return self.feed.state

    def get_rate(self) -> Decimal:
        return self.rates.get()

    def is_stale(self) -> bool:
        """Whether cached prices may be out of date (feed not streaming)."""
        return self.feed.state is not FeedState.STREAMING

    def list_valuations(
        self,
        search: Optional[str] = None,
        sort: Optional[SortOrder] = None,
    ) -> List[HoldingValuation]:
        """Holdings with their valuations, filtered and sorted for display.

        Args:
            search: Case-insensitive substring of the symbol
            sort: Ordering; unpriced holdings always sort last on price orders

        Returns:
            List of holding/valuation pairs
        """
        rows = [
            HoldingValuation(holding=h, valuation=self.cache.get(h.key))
            for h in self.registry.holdings()
        ]
        if search:
            needle = search.strip().upper()
            rows = [r for r in rows if needle in r.holding.key]

        if sort is SortOrder.ALPHABETICAL:
            rows.sort(key=lambda r: r.holding.key)
        elif sort is SortOrder.ALPHABETICAL_DESC:
            rows.sort(key=lambda r: r.holding.key, reverse=True)
        elif sort in (SortOrder.PRICE_ASC, SortOrder.PRICE_DESC):
            priced = [r for r in rows if r.unit_price is not None]
            unpriced = [r for r in rows if r.unit_price is None]
            priced.sort(key=lambda r: r.unit_price, reverse=sort is SortOrder.PRICE_DESC)
            rows = priced + unpriced
        return rows
