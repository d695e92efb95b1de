"""
SQLAlchemy ORM models for Versus.

This module defines the tables the tournament engine's collaborators read
and write. The engine itself never touches them.

Key design decisions:
- A collection belongs to one user and has a kind ("movies", "games"...)
- Items are the user's rated entries; elo_score is a plain float
- Catalog entries are the shared pool challengers are discovered from
- Items created from a challenger keep the catalog's external_id, which
  makes promotion idempotent

Tables:
- collections: One ranked collection per user and topic
- items: Rated entries of a collection
- catalog_entries: Global catalog challengers are drawn from
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from versus.elo.constants import DEFAULT_ELO


# =============================================================================
# Constants
# =============================================================================

ITEM_STATUS_ACTIVE = "ACTIVE"
# Hidden from future tournaments at the user's request
ITEM_STATUS_IGNORED = "IGNORED"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Collection Models
# =============================================================================

class Collection(Base):
    """
    A user's ranked collection (e.g. "Favourite films").

    The kind decides which catalog entries can show up as challengers.
    """
    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    items: Mapped[list["Item"]] = relationship(
        back_populates="collection", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Collection(id={self.id}, name='{self.name}', kind='{self.kind}')>"


class Item(Base):
    """
    One rated entry in a collection.

    elo_score is only ever written by the end-of-session rating batch (or
    set once when a challenger is promoted into the collection).
    """
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    collection_id: Mapped[int] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    elo_score: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_ELO)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ITEM_STATUS_ACTIVE)

    # Catalog id for items that entered as challengers
    external_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    collection: Mapped["Collection"] = relationship(back_populates="items")

    __table_args__ = (
        UniqueConstraint("collection_id", "external_id", name="uq_items_collection_external"),
        Index("idx_items_collection_status", "collection_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name='{self.name}', elo={self.elo_score:.1f})>"


# =============================================================================
# Catalog Models
# =============================================================================

class CatalogEntry(Base):
    """
    Shared catalog entry that can be offered as a challenger.

    Populated from external media sources; popularity orders discovery.
    """
    __tablename__ = "catalog_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    external_id: Mapped[str] = mapped_column(String(100), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    popularity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("kind", "external_id", name="uq_catalog_kind_external"),
        Index("idx_catalog_kind_popularity", "kind", "popularity"),
    )

    def __repr__(self) -> str:
        return f"<CatalogEntry(id={self.id}, title='{self.title}', kind='{self.kind}')>"
