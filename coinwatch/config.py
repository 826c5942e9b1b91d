"""Application configuration using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

# ===========================================
# Product Branding
# ===========================================
PRODUCT_NAME = "Coinwatch"
PRODUCT_TAGLINE = "Your holdings, valued on every tick."
PRODUCT_VERSION = "1.0.0"
PRODUCT_DESCRIPTION = "Track a handful of coins against the whole market feed, in two currencies."

QUOTE_CURRENCY_SYMBOL = "$"
SECONDARY_CURRENCY_SYMBOL = "₹"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Local persistence (used when no remote gateway is configured)
    database_url: str = "sqlite:///./coinwatch.db"

    # Remote persistence server, e.g. http://localhost:3036
    gateway_url: str = ""
    gateway_timeout_seconds: float = Field(10.0, gt=0)

    # Exchange rate used until one has been stored
    default_exchange_rate: Decimal = Field(Decimal("83.52"), gt=0)

    # Market feed
    feed_url: str = "https://api.binance.com/api/v3/ticker/price"
    feed_poll_seconds: float = Field(2.0, gt=0)
    feed_backoff_initial_seconds: float = Field(1.0, gt=0)
    feed_backoff_max_seconds: float = Field(30.0, gt=0)
    feed_stable_seconds: float = Field(60.0, ge=0)

    # Safety-net aggregate refresh; mutations already trigger recomputation
    recompute_interval_seconds: int = Field(5, ge=1, le=60)

    # Presentation rounding
    quote_places: int = Field(6, ge=0, le=12)
    secondary_places: int = Field(2, ge=0, le=12)

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
