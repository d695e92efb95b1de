"""Candidate, pair and rating-change types shared across the tournament engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, Mapping, Optional


class Origin(str, Enum):
    """Where a candidate comes from."""

    # Already in the user's collection, rating loaded from storage
    ESTABLISHED = "ESTABLISHED"
    # Discovered outside the collection, rating is provisional
    CHALLENGER = "CHALLENGER"


@dataclass(frozen=True)
class Candidate:
    """
    One comparable entity in a session.

    Attributes:
        id: Opaque identity, stable for the session
        origin: ESTABLISHED or CHALLENGER
        rating: Current rating. None for challengers until the pool
                assigns their baseline.
        display_data: Name, image, description... passed through untouched
        persisted_id: Id used when writing ratings back. Same as id for
                      established candidates, None for unpromoted challengers.
    """
    id: Hashable
    origin: Origin
    rating: Optional[float] = None
    display_data: Mapping[str, Any] = field(default_factory=dict, compare=False)
    persisted_id: Optional[Hashable] = None

    @classmethod
    def established(
        cls,
        id: Hashable,
        rating: float,
        display_data: Optional[Mapping[str, Any]] = None,
    ) -> "Candidate":
        return cls(
            id=id,
            origin=Origin.ESTABLISHED,
            rating=float(rating),
            display_data=dict(display_data or {}),
            persisted_id=id,
        )

    @classmethod
    def challenger(
        cls,
        id: Hashable,
        display_data: Optional[Mapping[str, Any]] = None,
    ) -> "Candidate":
        return cls(id=id, origin=Origin.CHALLENGER, display_data=dict(display_data or {}))

    @property
    def is_challenger(self) -> bool:
        return self.origin is Origin.CHALLENGER

    @property
    def name(self) -> Optional[str]:
        return self.display_data.get("name")

    def __repr__(self) -> str:
        return f"<Candidate({self.id!r}, {self.origin.value}, rating={self.rating})>"


@dataclass(frozen=True)
class Pair:
    """Two distinct candidate ids shown together in one round."""
    first: Hashable
    second: Hashable

    def __post_init__(self) -> None:
        if self.first == self.second:
            raise ValueError(f"a pair needs two distinct candidates, got {self.first!r} twice")

    @property
    def key(self) -> frozenset:
        """Order-independent identity used for repeat tracking."""
        return frozenset((self.first, self.second))

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id == self.first or candidate_id == self.second

    def __iter__(self):
        yield self.first
        yield self.second

    def other(self, candidate_id: Hashable) -> Hashable:
        """Return the id paired with candidate_id."""
        if candidate_id == self.first:
            return self.second
        if candidate_id == self.second:
            return self.first
        raise KeyError(candidate_id)


@dataclass(frozen=True)
class RatingChange:
    """One row of the commit batch: the final rating for a stored item."""
    persisted_id: Hashable
    final_rating: float

    def to_dict(self) -> dict[str, Any]:
        return {"persisted_id": self.persisted_id, "final_rating": self.final_rating}
