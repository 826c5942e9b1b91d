"""Database module."""

from .database import get_db, init_db, engine, SessionLocal, create_db_engine, create_session_factory
from .models import Base, Coin, ExchangeRate

__all__ = [
    "get_db",
    "init_db",
    "engine",
    "SessionLocal",
    "create_db_engine",
    "create_session_factory",
    "Base",
    "Coin",
    "ExchangeRate",
]
