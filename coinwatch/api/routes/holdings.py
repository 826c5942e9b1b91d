"""Holdings API routes.

Wire-compatible with the original coins server, so a remote
HttpPersistenceGateway can use this application as its store.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from coinwatch.api.deps import get_engine
from coinwatch.core.engine import ValuationEngine
from coinwatch.core.portfolio.models import Holding, HoldingCreate, QuantityUpdate, SymbolUpdate

router = APIRouter()


@router.get("", response_model=List[Holding])
async def list_holdings(engine: ValuationEngine = Depends(get_engine)):
    """List all tracked holdings."""
    return engine.get_holdings()


@router.post("", response_model=Holding, status_code=status.HTTP_201_CREATED)
async def add_holding(payload: HoldingCreate, engine: ValuationEngine = Depends(get_engine)):
    """Add a new holding."""
    return await engine.add_holding(payload.symbol, payload.quantity)


@router.put("/{holding_id}/symbol")
async def rename_holding(
    holding_id: int,
    payload: SymbolUpdate,
    engine: ValuationEngine = Depends(get_engine),
):
    """Rename a holding. Its valuation restarts from the next tick."""
    holding = await engine.rename_holding(holding_id, payload.new_symbol)
    return {"success": True, "symbol": holding.symbol}


@router.put("/{holding_id}/quantity")
async def resize_holding(
    holding_id: int,
    payload: QuantityUpdate,
    engine: ValuationEngine = Depends(get_engine),
):
    """Change a holding's quantity."""
    holding = await engine.resize_holding(holding_id, payload.quantity)
    return {"success": True, "quantity": holding.quantity}


@router.delete("/{holding_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_holding(holding_id: int, engine: ValuationEngine = Depends(get_engine)):
    """Delete a holding."""
    await engine.remove_holding(holding_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
