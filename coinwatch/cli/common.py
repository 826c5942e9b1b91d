"""Shared CLI helpers."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Awaitable, Optional, TypeVar

import typer
from rich.console import Console

from coinwatch.config import QUOTE_CURRENCY_SYMBOL, SECONDARY_CURRENCY_SYMBOL, get_settings
from coinwatch.core.engine import ValuationEngine
from coinwatch.core.errors import CoinwatchError
from coinwatch.core.portfolio.models import Holding
from coinwatch.core.valuation.models import quantize
from coinwatch.data.gateway import build_gateway

console = Console()
settings = get_settings()

T = TypeVar("T")


def run(coro: Awaitable[T]) -> T:
    """Run a coroutine, reporting engine errors as a clean CLI failure."""
    try:
        return asyncio.run(coro)
    except CoinwatchError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@asynccontextmanager
async def open_engine() -> AsyncIterator[ValuationEngine]:
    """Engine bootstrapped from the configured gateway, without the live feed."""
    engine = ValuationEngine(build_gateway(settings), settings=settings)
    try:
        await engine.bootstrap()
        yield engine
    finally:
        await engine.gateway.close()


def require_holding(engine: ValuationEngine, symbol: str) -> Holding:
    holding = engine.registry.lookup(symbol)
    if holding is None:
        console.print(f"[red]Error:[/red] {symbol.upper()} is not tracked")
        raise typer.Exit(1)
    return holding


def fmt_quote(value: Optional[Decimal]) -> str:
    if value is None:
        return f"{QUOTE_CURRENCY_SYMBOL}-"
    return f"{QUOTE_CURRENCY_SYMBOL}{quantize(value, settings.quote_places):,}"


def fmt_secondary(value: Optional[Decimal]) -> str:
    if value is None:
        return f"{SECONDARY_CURRENCY_SYMBOL}-"
    return f"{SECONDARY_CURRENCY_SYMBOL}{quantize(value, settings.secondary_places):,}"
