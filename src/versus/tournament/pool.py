"""Candidate pool for one tournament session."""

from __future__ import annotations

import dataclasses
import logging
from typing import Hashable, Iterable, Mapping, Optional

from versus.elo.constants import DEFAULT_ELO
from versus.tournament.candidates import Candidate, Origin
from versus.tournament.errors import InsufficientCandidates
from versus.tournament.store import RatingStore

logger = logging.getLogger(__name__)


class CandidatePool:
    """
    The comparable entities of one session and their current ratings.

    Established candidates keep the rating they were loaded with.
    Challengers all start from the same baseline: the mean rating of the
    established candidates at construction time (or default_rating when
    there are none). The baseline is computed once and does not follow
    later rating changes.

    Usage:
        pool = CandidatePool(
            established=[Candidate.established("a", 1250.0), ...],
            challengers=[Candidate.challenger("c", {"name": "Heat"})],
        )
        for candidate in pool.active():
            print(candidate.id, candidate.rating)
    """

    def __init__(
        self,
        established: Iterable[Candidate],
        challengers: Iterable[Candidate] = (),
        default_rating: float = DEFAULT_ELO,
    ):
        self._candidates: dict[Hashable, Candidate] = {}
        self._ignored: set[Hashable] = set()
        self.store = RatingStore()

        established = self._dedupe(established, Origin.ESTABLISHED)
        challengers = self._dedupe(challengers, Origin.CHALLENGER)

        if len(self._candidates) < 2:
            raise InsufficientCandidates(
                f"need at least 2 distinct candidates, got {len(self._candidates)}"
            )

        if established:
            baseline = sum(c.rating for c in established) / len(established)
        else:
            baseline = float(default_rating)
        self.challenger_baseline = baseline

        for candidate in established:
            self.store.seed(candidate.id, candidate.rating)
        for candidate in challengers:
            self._candidates[candidate.id] = dataclasses.replace(candidate, rating=baseline)
            self.store.seed(candidate.id, baseline)

        logger.debug(
            "Pool built: %d established, %d challengers, challenger baseline %.2f",
            len(established), len(challengers), baseline,
        )

    @classmethod
    def initialize(
        cls,
        established: Iterable[Candidate],
        challengers: Iterable[Candidate] = (),
        default_rating: float = DEFAULT_ELO,
    ) -> "CandidatePool":
        return cls(established, challengers, default_rating=default_rating)

    def _dedupe(self, candidates: Iterable[Candidate], origin: Origin) -> list[Candidate]:
        kept = []
        for candidate in candidates:
            if candidate.origin is not origin:
                raise ValueError(
                    f"{candidate.id!r} passed as {origin.value} but has origin {candidate.origin.value}"
                )
            if origin is Origin.ESTABLISHED:
                if candidate.rating is None:
                    raise ValueError(f"established candidate {candidate.id!r} has no rating")
                if candidate.persisted_id is None:
                    # Established ids are already storage ids
                    candidate = dataclasses.replace(candidate, persisted_id=candidate.id)
            if candidate.id in self._candidates:
                logger.warning("Dropping duplicate candidate %r", candidate.id)
                continue
            self._candidates[candidate.id] = candidate
            kept.append(candidate)
        return kept

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def get(self, candidate_id: Hashable) -> Candidate:
        """Candidate snapshot carrying its current rating."""
        candidate = self._candidates[candidate_id]
        return dataclasses.replace(candidate, rating=self.store.get(candidate_id))

    def rating(self, candidate_id: Hashable) -> float:
        return self.store.get(candidate_id)

    def all(self) -> tuple[Candidate, ...]:
        return tuple(self.get(cid) for cid in self._candidates)

    def active(self) -> tuple[Candidate, ...]:
        """All candidates except the ones ignored this session."""
        return tuple(self.get(cid) for cid in self._candidates if cid not in self._ignored)

    def challengers(self) -> tuple[Candidate, ...]:
        """Challengers that have not been promoted yet."""
        return tuple(c for c in self.all() if c.is_challenger)

    def mean_rating(self) -> float:
        ratings = [self.store.get(cid) for cid in self._candidates]
        return sum(ratings) / len(ratings)

    def is_ignored(self, candidate_id: Hashable) -> bool:
        return candidate_id in self._ignored

    @property
    def ignored(self) -> frozenset:
        return frozenset(self._ignored)

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._candidates

    def __len__(self) -> int:
        return len(self._candidates)

    # ------------------------------------------------------------------
    # Mutation (session controller only)
    # ------------------------------------------------------------------

    def apply_ratings(self, ratings: Mapping[Hashable, float]) -> None:
        self.store.update(ratings)

    def promote(self, candidate_id: Hashable, persisted_id: Hashable) -> Candidate:
        """Turn a challenger into an established candidate."""
        candidate = self._candidates[candidate_id]
        if not candidate.is_challenger:
            raise ValueError(f"{candidate_id!r} is not a challenger")
        promoted = dataclasses.replace(
            candidate, origin=Origin.ESTABLISHED, persisted_id=persisted_id
        )
        self._candidates[candidate_id] = promoted
        return self.get(candidate_id)

    def ignore(self, candidate_id: Hashable) -> None:
        """Leave candidate_id out of every later pairing."""
        if candidate_id not in self._candidates:
            raise KeyError(candidate_id)
        self._ignored.add(candidate_id)

    def persisted_id(self, candidate_id: Hashable) -> Optional[Hashable]:
        return self._candidates[candidate_id].persisted_id
