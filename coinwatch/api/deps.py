"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from coinwatch.core.engine import ValuationEngine


async def get_engine(request: Request) -> ValuationEngine:
    """Return the engine started with the application.

    Async, like every route: engine state is only touched on the event loop.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Valuation engine is not running",
        )
    return engine
