"""
Database session management for Versus.

Provides the SQLAlchemy engine and session factory, configured from
config.py. The engine is only created on first use, so importing this
module never opens a connection.

Usage:
    from versus.db import get_session

    with get_session() as session:
        items = session.query(Item).all()
        # Commits automatically on exit, rolls back on exception

    # Tests and scripts can pass their own factory
    with get_session(sessionmaker(bind=engine)) as session:
        ...
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from versus.config import settings

SessionFactory = Callable[[], Session]


@lru_cache
def get_engine() -> Engine:
    """
    Create the SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse
    - Echo mode disabled (set LOG_LEVEL=DEBUG for SQL logging)
    - Pre-ping to verify connections before use (handles stale connections)
    """
    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
    return create_engine(settings.database_url, **kwargs)


@lru_cache
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured engine."""
    return sessionmaker(
        autocommit=False,  # We'll handle commits explicitly
        autoflush=False,  # Don't auto-flush before queries (more control)
        bind=get_engine(),
    )


@contextmanager
def get_session(factory: Optional[SessionFactory] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.

    Args:
        factory: Session factory to use instead of the configured one

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
