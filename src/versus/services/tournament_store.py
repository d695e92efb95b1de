"""
SQL-backed collaborators for tournament sessions.

Implements the three interfaces the engine depends on:
- SqlCandidateSource: loads a collection's items and discovers challengers
  from the catalog
- SqlItemCreator: adds a winning challenger to the collection
- SqlRatingBatchWriter: writes the end-of-session batch in one transaction

Challenger discovery:
1. Only fill the slots the collection leaves free in a pool of
   tournament_pool_size candidates
2. Take the most popular catalog entries of the collection's kind
3. Skip anything the user already has, by name (case-insensitive) or by
   external id (this also keeps ignored items out)
"""

from __future__ import annotations

import logging
from typing import Hashable, Iterable, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from versus.config import settings
from versus.db.models import (
    ITEM_STATUS_ACTIVE,
    ITEM_STATUS_IGNORED,
    CatalogEntry,
    Collection,
    Item,
)
from versus.db.session import SessionFactory, get_session
from versus.tournament.candidates import Candidate, RatingChange

logger = logging.getLogger(__name__)


def truncate_description(description: Optional[str], max_length: int) -> Optional[str]:
    """Cut long descriptions to max_length characters, ending in '...'."""
    if not description:
        return None
    if len(description) <= max_length:
        return description
    return description[: max_length - 3] + "..."


def challenger_id(entry_id: int) -> str:
    """Provisional session id for a catalog entry."""
    return f"challenger-{entry_id}"


class SqlCandidateSource:
    """Loads tournament candidates for one collection."""

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        pool_size: Optional[int] = None,
        description_max_length: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self.pool_size = pool_size or settings.tournament_pool_size
        self.description_max_length = description_max_length or settings.description_max_length

    def load_established(self, context_id: Hashable) -> list[Candidate]:
        """Active items of the collection, capped at the pool size."""
        with get_session(self._session_factory) as session:
            items = (
                session.query(Item)
                .filter(Item.collection_id == context_id, Item.status == ITEM_STATUS_ACTIVE)
                .order_by(Item.id)
                .limit(self.pool_size)
                .all()
            )
            candidates = [
                Candidate.established(
                    item.id,
                    item.elo_score,
                    {
                        "name": item.name,
                        "image": item.image,
                        "description": truncate_description(
                            item.description, self.description_max_length
                        ),
                    },
                )
                for item in items
            ]

        logger.debug("Loaded %d established items for collection %s", len(candidates), context_id)
        return candidates

    def load_challengers(self, context_id: Hashable, exclude_names: Iterable[str]) -> list[Candidate]:
        """Popular catalog entries the user does not have yet."""
        excluded = {name.strip().lower() for name in exclude_names if name}

        with get_session(self._session_factory) as session:
            collection = session.get(Collection, context_id)
            if collection is None:
                logger.warning("Collection %s not found, no challengers", context_id)
                return []

            owned = (
                session.query(Item.name, Item.external_id)
                .filter(Item.collection_id == context_id)
                .all()
            )
            active_count = (
                session.query(Item)
                .filter(Item.collection_id == context_id, Item.status == ITEM_STATUS_ACTIVE)
                .count()
            )
            needed = self.pool_size - active_count
            if needed <= 0:
                return []

            excluded.update(name.strip().lower() for name, _ in owned if name)
            owned_external = {external for _, external in owned if external}

            query = session.query(CatalogEntry).filter(CatalogEntry.kind == collection.kind)
            if excluded:
                query = query.filter(func.lower(func.trim(CatalogEntry.title)).notin_(excluded))
            if owned_external:
                query = query.filter(CatalogEntry.external_id.notin_(owned_external))
            entries = (
                query.order_by(CatalogEntry.popularity.desc(), CatalogEntry.id)
                .limit(needed)
                .all()
            )

            candidates = [
                Candidate.challenger(
                    challenger_id(entry.id),
                    {
                        "name": entry.title,
                        "image": entry.image,
                        "description": truncate_description(
                            entry.description, self.description_max_length
                        ),
                        "external_id": entry.external_id,
                    },
                )
                for entry in entries
            ]

        logger.debug(
            "Discovered %d challengers for collection %s (%d slots free)",
            len(candidates), context_id, needed,
        )
        return candidates


class SqlItemCreator:
    """Adds promoted challengers to one collection."""

    def __init__(self, collection_id: int, session_factory: Optional[SessionFactory] = None):
        self.collection_id = collection_id
        self._session_factory = session_factory

    def create_persisted_record(self, challenger: Candidate, rating_at_promotion: float) -> int:
        """
        Create the item for a winning challenger and return its id.

        Idempotent: an item with the same external id in this collection is
        returned as-is.
        """
        data = challenger.display_data
        external_id = data.get("external_id") or str(challenger.id)

        with get_session(self._session_factory) as session:
            existing = (
                session.query(Item)
                .filter(Item.collection_id == self.collection_id, Item.external_id == external_id)
                .first()
            )
            if existing:
                logger.debug("Challenger %r already stored as item %d", challenger.id, existing.id)
                return existing.id

            item = Item(
                collection_id=self.collection_id,
                name=data.get("name") or "Untitled",
                image=data.get("image"),
                description=data.get("description"),
                elo_score=rating_at_promotion,
                status=ITEM_STATUS_ACTIVE,
                external_id=external_id,
            )
            session.add(item)
            session.flush()
            item_id = item.id

        logger.info("Added challenger %r to collection %d as item %d", challenger.id, self.collection_id, item_id)
        return item_id


class SqlRatingBatchWriter:
    """Writes a session's rating batch in a single transaction."""

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session_factory = session_factory

    def apply_rating_batch(
        self,
        entries: Sequence[RatingChange],
        ignored: Sequence[Hashable] = (),
    ) -> bool:
        """
        Apply every rating and ignore flag, or none of them.

        Returns False (after rolling back) if any item is missing or the
        database rejects the write.
        """
        wanted = {entry.persisted_id for entry in entries} | set(ignored)
        try:
            with get_session(self._session_factory) as session:
                items = {
                    item.id: item
                    for item in session.query(Item).filter(Item.id.in_(wanted)).all()
                }
                missing = wanted - set(items)
                if missing:
                    raise LookupError(f"items not found: {sorted(missing, key=str)}")

                for entry in entries:
                    items[entry.persisted_id].elo_score = entry.final_rating
                for item_id in ignored:
                    items[item_id].status = ITEM_STATUS_IGNORED
        except (SQLAlchemyError, LookupError) as exc:
            logger.error("Rating batch rolled back: %s", exc)
            return False

        logger.info("Applied %d ratings, %d ignored items", len(entries), len(ignored))
        return True
