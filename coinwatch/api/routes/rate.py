"""Exchange rate API routes."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from coinwatch.api.deps import get_engine
from coinwatch.core.engine import ValuationEngine

router = APIRouter()


class RateUpdate(BaseModel):
    """Schema for setting the exchange rate."""

    price: Decimal


@router.get("")
async def get_rate(engine: ValuationEngine = Depends(get_engine)):
    """Current exchange rate (key kept for existing clients)."""
    return {"inrPrice": engine.get_rate()}


@router.put("")
async def set_rate(payload: RateUpdate, engine: ValuationEngine = Depends(get_engine)):
    """Set the exchange rate and revalue every holding."""
    rate = await engine.set_rate(payload.price)
    return {"success": True, "inrPrice": rate}
