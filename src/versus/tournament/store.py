"""In-memory rating state for one tournament session."""

from __future__ import annotations

from typing import Hashable, Iterator, Mapping


class RatingStore:
    """
    Current rating per candidate for the duration of one session.

    Seeded once per candidate, then only moved by rating updates. Remembers
    which candidates actually changed, in the order they first changed, so
    the commit payload can skip no-op writes.
    """

    def __init__(self) -> None:
        self._initial: dict[Hashable, float] = {}
        self._current: dict[Hashable, float] = {}
        self._changed: dict[Hashable, None] = {}

    def seed(self, candidate_id: Hashable, rating: float) -> None:
        if candidate_id in self._initial:
            raise KeyError(f"rating for {candidate_id!r} already seeded")
        self._initial[candidate_id] = float(rating)
        self._current[candidate_id] = float(rating)

    def get(self, candidate_id: Hashable) -> float:
        return self._current[candidate_id]

    def initial(self, candidate_id: Hashable) -> float:
        return self._initial[candidate_id]

    def set(self, candidate_id: Hashable, rating: float) -> None:
        if candidate_id not in self._current:
            raise KeyError(candidate_id)
        rating = float(rating)
        if rating != self._current[candidate_id]:
            self._changed.setdefault(candidate_id, None)
        self._current[candidate_id] = rating

    def update(self, ratings: Mapping[Hashable, float]) -> None:
        """Write several ratings, validating every id first."""
        missing = [cid for cid in ratings if cid not in self._current]
        if missing:
            raise KeyError(missing[0])
        for candidate_id, rating in ratings.items():
            self.set(candidate_id, rating)

    def changed(self) -> list[Hashable]:
        """Ids whose rating changed at least once, in order of first change."""
        return list(self._changed)

    def snapshot(self) -> dict[Hashable, float]:
        return dict(self._current)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._current

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._current)

    def __len__(self) -> int:
        return len(self._current)
