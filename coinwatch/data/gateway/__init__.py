"""Persistence gateways for holdings and the exchange rate.

Usage:
    from coinwatch.data.gateway import build_gateway

    gateway = build_gateway(settings)
    holdings = await gateway.list()
"""

from coinwatch.config import Settings
from coinwatch.data.gateway.base import PersistenceGateway
from coinwatch.data.gateway.http import HttpPersistenceGateway
from coinwatch.data.gateway.sql import SqlPersistenceGateway


def build_gateway(settings: Settings) -> PersistenceGateway:
    """Pick the remote gateway when a server URL is configured, else local SQL."""
    if settings.gateway_url:
        return HttpPersistenceGateway(
            settings.gateway_url,
            timeout=settings.gateway_timeout_seconds,
        )
    from coinwatch.db.database import init_db

    init_db()
    return SqlPersistenceGateway()


__all__ = [
    "PersistenceGateway",
    "HttpPersistenceGateway",
    "SqlPersistenceGateway",
    "build_gateway",
]
