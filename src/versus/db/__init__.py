"""
Database module for Versus.

Provides SQLAlchemy ORM models and session management.

Usage:
    from versus.db import get_session, Item

    with get_session() as session:
        items = session.query(Item).all()
"""

from versus.db.models import (
    ITEM_STATUS_ACTIVE,
    ITEM_STATUS_IGNORED,
    Base,
    CatalogEntry,
    Collection,
    Item,
)
from versus.db.session import get_engine, get_session, get_session_factory

__all__ = [
    # Base
    "Base",
    # Models
    "Collection",
    "Item",
    "CatalogEntry",
    "ITEM_STATUS_ACTIVE",
    "ITEM_STATUS_IGNORED",
    # Session
    "get_session",
    "get_engine",
    "get_session_factory",
]
