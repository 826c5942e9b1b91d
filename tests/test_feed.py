"""Tests for the price feed consumer and tick sources."""

import asyncio
from decimal import Decimal

import httpx
import pytest

from coinwatch.core.engine import ValuationEngine
from coinwatch.core.errors import TransportError
from coinwatch.core.portfolio.models import Holding
from coinwatch.core.valuation.models import FeedState
from coinwatch.data.market.feed import ExponentialBackoff
from coinwatch.data.market.source import BinanceTickerSource

from conftest import InMemoryGateway, ScriptedSource, make_settings, wait_until


def make_engine(connections, **settings_overrides):
    gateway = InMemoryGateway([
        Holding(id=1, symbol="BTCUSDT", quantity=Decimal("0.5")),
        Holding(id=2, symbol="ETHUSDT", quantity=Decimal("2")),
    ], rate=Decimal("83"))
    source = ScriptedSource(connections)
    return ValuationEngine(gateway, source=source, settings=make_settings(**settings_overrides))


async def stop_feed(engine, task):
    engine.feed.stop()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


class RecordingBackoff(ExponentialBackoff):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.delays = []

    def next_delay(self):
        delay = super().next_delay()
        self.delays.append(delay)
        return delay


class TestApplyBatch:
    """Tests for applying tick batches."""

    def test_only_tracked_symbols_are_applied(self):
        """Should apply ticks for tracked symbols only."""
        engine = make_engine([])

        async def scenario():
            await engine.bootstrap()
            return engine.feed.apply_batch([
                ("BTCUSDT", "60000"),
                ("DOGEUSDT", "0.1"),
                ("XRPUSDT", "0.5"),
            ])

        applied = asyncio.run(scenario())

        assert applied == 1
        assert engine.get_valuation("BTCUSDT").quote_total == Decimal("30000")
        assert engine.get_valuation("BTCUSDT").secondary_total == Decimal("2490000")
        assert engine.get_valuation("DOGEUSDT") is None
        assert engine.get_valuation("ETHUSDT").last_unit_price is None

    def test_last_write_wins_within_batch(self):
        """Should keep the last price seen for a symbol in one batch."""
        engine = make_engine([])

        async def scenario():
            await engine.bootstrap()
            engine.feed.apply_batch([("BTCUSDT", "60000"), ("BTCUSDT", "61000")])

        asyncio.run(scenario())

        assert engine.get_valuation("BTCUSDT").last_unit_price == Decimal("61000")

    def test_malformed_ticks_are_skipped(self):
        """Should skip and count malformed ticks."""
        engine = make_engine([])

        async def scenario():
            await engine.bootstrap()
            return engine.feed.apply_batch([
                ("BTCUSDT", "garbage"),
                (None, "1"),
                ("ETHUSDT", "3000"),
            ])

        applied = asyncio.run(scenario())

        assert applied == 1
        assert engine.feed.ticks_skipped == 2
        assert engine.get_valuation("BTCUSDT").last_unit_price is None
        assert engine.get_valuation("ETHUSDT").quote_total == Decimal("6000")

    def test_symbol_case_is_ignored(self):
        """Should match ticks to holdings regardless of case."""
        engine = make_engine([])

        async def scenario():
            await engine.bootstrap()
            engine.feed.apply_batch([("btcusdt", "100")])

        asyncio.run(scenario())

        assert engine.get_valuation("BTCUSDT").last_unit_price == Decimal("100")


class TestBackoff:
    """Tests for the reconnect delay policy."""

    def test_doubles_up_to_cap(self):
        """Should double each delay up to the cap."""
        backoff = ExponentialBackoff(initial=1, maximum=30)

        delays = [backoff.next_delay() for _ in range(7)]

        assert delays == [1, 2, 4, 8, 16, 30, 30]

    def test_reset_returns_to_initial(self):
        """Should start over from the initial delay after a reset."""
        backoff = ExponentialBackoff(initial=1, maximum=30)
        backoff.next_delay()
        backoff.next_delay()

        backoff.reset()

        assert backoff.next_delay() == 1

    @pytest.mark.parametrize("initial,maximum", [(0, 30), (5, 1)])
    def test_invalid_configuration(self, initial, maximum):
        """Should reject non-positive or inverted delays."""
        with pytest.raises(ValueError):
            ExponentialBackoff(initial=initial, maximum=maximum)


class TestFeedLifecycle:
    """Tests for connection state and reconnects."""

    def test_reconnects_after_transport_error(self):
        """Should reconnect and keep streaming after a transport error."""
        engine = make_engine([
            [[("BTCUSDT", "60000")], TransportError("connection reset")],
            [[("BTCUSDT", "62000")]],
        ])
        states = []
        engine.feed.on_state_change(states.append)

        async def scenario():
            await engine.bootstrap()
            task = asyncio.create_task(engine.feed.run())
            await wait_until(lambda: engine.feed.batches_applied >= 2)
            await stop_feed(engine, task)

        asyncio.run(scenario())

        assert states[:5] == [
            FeedState.CONNECTING,
            FeedState.STREAMING,
            FeedState.DISCONNECTED,
            FeedState.CONNECTING,
            FeedState.STREAMING,
        ]
        assert engine.feed.reconnects >= 1
        assert engine.get_valuation("BTCUSDT").last_unit_price == Decimal("62000")

    def test_valuations_survive_disconnect(self):
        """Should keep cached valuations while disconnected."""
        engine = make_engine([[[("BTCUSDT", "60000")], TransportError("dropped")]])

        async def scenario():
            await engine.bootstrap()
            task = asyncio.create_task(engine.feed.run())
            await wait_until(lambda: engine.feed.reconnects >= 1)
            await stop_feed(engine, task)

        asyncio.run(scenario())

        assert engine.get_feed_state() is FeedState.DISCONNECTED
        assert engine.is_stale()
        assert engine.get_valuation("BTCUSDT").quote_total == Decimal("30000")

    def test_backoff_grows_across_failed_connections(self):
        """Should wait longer after each failed connection."""
        engine = make_engine([
            [TransportError("refused")],
            [TransportError("refused")],
            [TransportError("refused")],
        ])
        engine.feed.backoff = RecordingBackoff(initial=0.01, maximum=0.03)

        async def scenario():
            await engine.bootstrap()
            task = asyncio.create_task(engine.feed.run())
            await wait_until(lambda: engine.feed.reconnects >= 3)
            await stop_feed(engine, task)

        asyncio.run(scenario())

        assert engine.feed.backoff.delays[:3] == [0.01, 0.02, 0.03]

    def test_backoff_resets_after_stable_streaming(self):
        """Should reset the delay after a stable stream."""
        engine = make_engine([[[("BTCUSDT", "60000")], TransportError("dropped")]])
        backoff = RecordingBackoff(initial=0.01, maximum=0.05)
        for _ in range(3):
            backoff.next_delay()
        backoff.delays.clear()
        engine.feed.backoff = backoff
        engine.feed.stable_seconds = 0

        async def scenario():
            await engine.bootstrap()
            task = asyncio.create_task(engine.feed.run())
            await wait_until(lambda: engine.feed.reconnects >= 1)
            await stop_feed(engine, task)

        asyncio.run(scenario())

        assert backoff.delays[0] == 0.01

    def test_stop_interrupts_backoff_wait(self):
        """Should stop without waiting out the backoff delay."""
        engine = make_engine([[TransportError("refused")]])
        engine.feed.backoff = ExponentialBackoff(initial=30, maximum=30)

        async def scenario():
            await engine.bootstrap()
            task = asyncio.create_task(engine.feed.run())
            await wait_until(lambda: engine.feed.reconnects >= 1)
            engine.feed.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())

        assert engine.get_feed_state() is FeedState.DISCONNECTED


class TestBinanceTickerSource:
    """Tests for the Binance polling source."""

    def test_yields_symbol_price_pairs(self):
        """Should yield symbol and price pairs from the ticker response."""
        def handler(request):
            return httpx.Response(200, json=[
                {"symbol": "BTCUSDT", "price": "60000.01"},
                {"symbol": "ETHUSDT", "price": "3000.5"},
            ])

        source = BinanceTickerSource(url="https://feed.test/ticker", transport=httpx.MockTransport(handler))

        async def first_batch():
            stream = source.stream()
            try:
                return await stream.__anext__()
            finally:
                await stream.aclose()

        batch = asyncio.run(first_batch())

        assert batch == [("BTCUSDT", "60000.01"), ("ETHUSDT", "3000.5")]

    @pytest.mark.parametrize(
        "response,retriable",
        [
            (httpx.Response(503, text="maintenance"), True),
            (httpx.Response(418, text="banned"), False),
            (httpx.Response(200, json={"code": -1}), True),
        ],
    )
    def test_failures_raise_transport_error(self, response, retriable):
        """Should raise a transport error for a failed response."""
        source = BinanceTickerSource(
            url="https://feed.test/ticker",
            transport=httpx.MockTransport(lambda request: response),
        )

        async def first_batch():
            stream = source.stream()
            try:
                return await stream.__anext__()
            finally:
                await stream.aclose()

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(first_batch())

        assert exc_info.value.retriable is retriable
