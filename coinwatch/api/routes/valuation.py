"""Valuation API routes (read-only)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from coinwatch.api.deps import get_engine
from coinwatch.core.engine import SortOrder, ValuationEngine
from coinwatch.core.portfolio.models import Holding
from coinwatch.core.valuation.models import ValuationEntry, quantize

router = APIRouter()

# Handlers are async so they read engine state on the loop that mutates it.


class ValuationResponse(BaseModel):
    """A holding's value in both currencies, rounded for display."""

    id: Optional[int] = None
    symbol: str
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    quote_total: Optional[Decimal] = None
    secondary_total: Optional[Decimal] = None
    priced_at: Optional[datetime] = None
    stale: bool


class TotalResponse(BaseModel):
    """Portfolio total in both currencies."""

    quote_sum: Decimal
    secondary_sum: Decimal
    priced: int
    tracked: int
    rate: Decimal
    stale: bool


class FeedResponse(BaseModel):
    """Price feed status."""

    state: str
    stale: bool
    batches_applied: int
    ticks_applied: int
    ticks_skipped: int
    reconnects: int


def _to_response(
    symbol: str,
    entry: Optional[ValuationEntry],
    engine: ValuationEngine,
    holding: Optional[Holding] = None,
) -> ValuationResponse:
    settings = engine.settings
    return ValuationResponse(
        id=holding.id if holding else None,
        symbol=symbol,
        quantity=holding.quantity if holding else None,
        unit_price=quantize(entry.last_unit_price, settings.quote_places) if entry else None,
        quote_total=quantize(entry.quote_total, settings.quote_places) if entry else None,
        secondary_total=quantize(entry.secondary_total, settings.secondary_places) if entry else None,
        priced_at=entry.priced_at if entry else None,
        stale=engine.is_stale() and entry is not None and entry.is_priced,
    )


@router.get("/valuations", response_model=List[ValuationResponse])
async def list_valuations(
    search: Optional[str] = Query(None, description="Case-insensitive symbol substring"),
    sort: Optional[SortOrder] = Query(None, description="Ordering for the list"),
    engine: ValuationEngine = Depends(get_engine),
):
    """List holdings with their current valuations."""
    return [
        _to_response(row.holding.symbol, row.valuation, engine, row.holding)
        for row in engine.list_valuations(search=search, sort=sort)
    ]


@router.get("/valuations/{symbol}", response_model=ValuationResponse)
async def get_valuation(symbol: str, engine: ValuationEngine = Depends(get_engine)):
    """Get the valuation for one tracked symbol."""
    entry = engine.get_valuation(symbol)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{symbol.upper()} is not tracked",
        )
    return _to_response(entry.symbol, entry, engine, engine.registry.lookup(symbol))


@router.get("/total", response_model=TotalResponse)
async def get_total(engine: ValuationEngine = Depends(get_engine)):
    """Portfolio total. Unpriced holdings count as zero."""
    total = engine.get_aggregate_total()
    settings = engine.settings
    return TotalResponse(
        quote_sum=quantize(total.quote_sum, settings.quote_places),
        secondary_sum=quantize(total.secondary_sum, settings.secondary_places),
        priced=total.priced,
        tracked=total.tracked,
        rate=engine.get_rate(),
        stale=engine.is_stale(),
    )


@router.get("/feed", response_model=FeedResponse)
async def get_feed(engine: ValuationEngine = Depends(get_engine)):
    """Price feed connection state and counters."""
    feed = engine.feed
    return FeedResponse(
        state=engine.get_feed_state().value,
        stale=engine.is_stale(),
        batches_applied=feed.batches_applied,
        ticks_applied=feed.ticks_applied,
        ticks_skipped=feed.ticks_skipped,
        reconnects=feed.reconnects,
    )
