"""SQLAlchemy database configuration and session management."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from coinwatch.config import get_settings

settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine, with SQLite-specific settings where needed."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Sessions run in worker threads
    return create_engine(database_url, connect_args=connect_args, echo=False)


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        expire_on_commit=False,  # Allow accessing attributes after commit/close
    )


engine = create_db_engine(settings.database_url)
SessionLocal = create_session_factory(engine)


@contextmanager
def get_db(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db() as db:
            db.query(Coin).all()
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Initialize database tables."""
    from .models import Base

    Base.metadata.create_all(bind=bind or engine)
