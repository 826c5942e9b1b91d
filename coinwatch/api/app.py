"""FastAPI application setup."""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from coinwatch.api.routes import holdings, rate, valuation
from coinwatch.config import PRODUCT_DESCRIPTION, PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, get_settings
from coinwatch.core.engine import ValuationEngine
from coinwatch.core.errors import (
    CoinwatchError,
    ConflictError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from coinwatch.data.gateway import build_gateway

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    TransportError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def _engine_error_handler(request: Request, exc: CoinwatchError) -> JSONResponse:
    """Map engine errors to HTTP status codes."""
    code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(status_code=code, content={"detail": str(exc)})


def create_app(engine: Optional[ValuationEngine] = None, live: bool = True) -> FastAPI:
    """Build the application.

    Args:
        engine: Engine to serve (defaults to one built from settings on startup)
        live: Whether to run the price feed and the periodic refresh
    """
    app = FastAPI(
        title=f"{PRODUCT_NAME} API",
        description=PRODUCT_DESCRIPTION,
        version=PRODUCT_VERSION,
    )
    app.add_exception_handler(CoinwatchError, _engine_error_handler)

    @app.on_event("startup")
    async def startup():
        """Start the valuation engine."""
        nonlocal engine
        if engine is None:
            settings = get_settings()
            engine = ValuationEngine(build_gateway(settings), settings=settings)
        await engine.start(with_feed=live, with_scheduler=live)
        app.state.engine = engine

    @app.on_event("shutdown")
    async def shutdown():
        """Stop the valuation engine."""
        if engine is not None:
            await engine.close()
        app.state.engine = None

    @app.get("/api/health")
    async def health():
        """Health check endpoint."""
        return {
            "name": PRODUCT_NAME,
            "version": PRODUCT_VERSION,
            "status": "ok",
            "tagline": PRODUCT_TAGLINE,
        }

    # Mount API routers
    app.include_router(holdings.router, prefix="/api/coins", tags=["holdings"])
    app.include_router(rate.router, prefix="/api/inr", tags=["rate"])
    app.include_router(valuation.router, prefix="/api", tags=["valuation"])

    return app


app = create_app()
