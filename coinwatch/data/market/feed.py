"""Price feed consumer - applies market-wide tick batches to tracked holdings."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Callable, Iterable, List, Optional

from coinwatch.core.errors import TransportError
from coinwatch.core.portfolio.registry import HoldingsRegistry
from coinwatch.core.valuation.cache import ValuationCache
from coinwatch.core.valuation.models import FeedState
from coinwatch.core.valuation.rates import CurrencyRateService

from .models import parse_tick
from .source import RawTick, TickSource

logger = logging.getLogger(__name__)

StateListener = Callable[[FeedState], None]


class ExponentialBackoff:
    """Reconnect delay policy: doubles per failure up to a cap."""

    def __init__(self, initial: float = 1.0, maximum: float = 30.0, factor: float = 2.0):
        if initial <= 0 or maximum < initial or factor < 1:
            raise ValueError(
                f"Invalid backoff: initial={initial}, maximum={maximum}, factor={factor}"
            )
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self._current = initial

    def next_delay(self) -> float:
        """Return the delay to wait now and grow the next one."""
        delay = self._current
        self._current = min(self._current * self.factor, self.maximum)
        return delay

    def reset(self) -> None:
        self._current = self.initial


class PriceFeedConsumer:
    """Consumes tick batches and keeps tracked valuations current.

    Lifecycle: DISCONNECTED -> CONNECTING -> STREAMING -> DISCONNECTED on
    failure, then reconnects after a backoff delay. Cached valuations are
    kept while disconnected; they are stale until streaming resumes.
    """

    def __init__(
        self,
        source: TickSource,
        registry: HoldingsRegistry,
        cache: ValuationCache,
        rates: CurrencyRateService,
        backoff: Optional[ExponentialBackoff] = None,
        stable_seconds: float = 60.0,
    ):
        """Initialize the consumer.

        Args:
            source: Transport delivering tick batches
            registry: Registry used to filter tracked symbols
            cache: Valuation cache to update
            rates: Exchange rate service
            backoff: Reconnect delay policy
            stable_seconds: Streaming time after which the backoff resets
        """
        self.source = source
        self.registry = registry
        self.cache = cache
        self.rates = rates
        self.backoff = backoff or ExponentialBackoff()
        self.stable_seconds = stable_seconds

        self._state = FeedState.DISCONNECTED
        self._listeners: List[StateListener] = []
        self._stop = asyncio.Event()

        self.batches_applied = 0
        self.ticks_applied = 0
        self.ticks_skipped = 0
        self.reconnects = 0

    @property
    def state(self) -> FeedState:
        return self._state

    def on_state_change(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: FeedState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        logger.info(f"Price feed {previous.value} -> {state.value}")
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Feed state listener failed")

    def apply_batch(self, batch: Iterable[RawTick]) -> int:
        """Apply one batch of raw ticks.

        Cost is linear in the batch size: each tick is one dictionary lookup
        against the registry. Untracked symbols are dropped, malformed entries
        skipped, and repeated symbols resolved last-write-wins.

        Returns:
            Number of ticks applied to tracked holdings
        """
        rate = self.rates.get()
        applied = 0
        for raw_symbol, raw_price in batch:
            tick = parse_tick(raw_symbol, raw_price)
            if tick is None:
                self.ticks_skipped += 1
                logger.debug(f"Skipping malformed tick {raw_symbol!r}={raw_price!r}")
                continue
            holding = self.registry.lookup(tick.symbol)
            if holding is None:
                continue
            if self.cache.apply_price(tick.symbol, tick.unit_price, holding.quantity, rate):
                applied += 1

        self.batches_applied += 1
        self.ticks_applied += applied
        return applied

    async def run(self) -> None:
        """Consume the source until ``stop()`` is called, reconnecting on failure."""
        loop = asyncio.get_running_loop()
        self._stop.clear()

        while not self._stop.is_set():
            self._set_state(FeedState.CONNECTING)
            connected_at: Optional[float] = None

            try:
                async with aclosing(self.source.stream()) as batches:
                    async for batch in batches:
                        if connected_at is None:
                            connected_at = loop.time()
                            self._set_state(FeedState.STREAMING)
                        self.apply_batch(batch)
                        if loop.time() - connected_at >= self.stable_seconds:
                            self.backoff.reset()
                        if self._stop.is_set():
                            break
                    else:
                        logger.warning(f"Price feed {self.source.name} ended")
            except asyncio.CancelledError:
                self._set_state(FeedState.DISCONNECTED)
                raise
            except TransportError as e:
                logger.warning(f"Price feed transport error: {e}")
            except Exception:
                logger.exception("Unexpected price feed failure")

            self._set_state(FeedState.DISCONNECTED)
            if self._stop.is_set():
                break

            if connected_at is not None and loop.time() - connected_at >= self.stable_seconds:
                self.backoff.reset()
            delay = self.backoff.next_delay()
            self.reconnects += 1
            logger.warning(f"Reconnecting to price feed in {delay:.1f}s (attempt {self.reconnects})")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

        logger.info("Price feed consumer stopped")

    def stop(self) -> None:
        """Ask ``run()`` to finish after the current batch or backoff wait."""
        self._stop.set()
