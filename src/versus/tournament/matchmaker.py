"""
Pair selection for tournament sessions.

Picks which two candidates are compared next. The policy, in priority order:

1. Never repeat a pair already shown this session.
2. Never put a challenger into two unresolved pairings at once.
3. Prefer the smallest rating gap: close ratings make the most informative
   comparison.
4. On equal gaps, prefer pairs with fewer unpromoted challengers, then a
   seeded random tie-break.

A discovery round (probability discovery_rate) restricts the choice to pairs
that include an unpromoted challenger, so new items get a look-in even when
their baseline sits far from the nearest established rating.
"""

from __future__ import annotations

import itertools
import logging
import random
from typing import AbstractSet, Hashable, Iterable, Optional

from versus.tournament.candidates import Candidate, Pair
from versus.tournament.pool import CandidatePool

logger = logging.getLogger(__name__)


class Matchmaker:
    """
    Selects the next pair from a candidate pool.

    Deterministic for a given seed and sequence of calls. Reads the pool,
    never writes to it.

    Usage:
        matchmaker = Matchmaker(seed=7, discovery_rate=0.2)
        pair = matchmaker.next_pair(pool, shown_pairs)
        if pair is None:
            ...  # every pair has been shown, the session is exhausted
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        discovery_rate: float = 0.0,
        allow_repeats: bool = False,
    ):
        if not 0.0 <= discovery_rate <= 1.0:
            raise ValueError(f"discovery_rate must be between 0 and 1, got {discovery_rate}")
        self.seed = seed
        self.discovery_rate = discovery_rate
        self.allow_repeats = allow_repeats
        self._rng = random.Random(seed)

    def next_pair(
        self,
        pool: CandidatePool,
        shown_pairs: AbstractSet[frozenset],
        reserved: Iterable[Hashable] = (),
    ) -> Optional[Pair]:
        """
        Choose the next pair to present.

        Args:
            pool: Session candidate pool (ignored candidates are left out)
            shown_pairs: Keys (frozensets of two ids) of pairs already shown
            reserved: Ids already sitting in an unresolved pairing. Challengers
                      listed here are not paired again until resolved.

        Returns:
            The chosen Pair, or None when no eligible pair is left
        """
        reserved = set(reserved)
        candidates = pool.active()
        allowed = [
            (a, b)
            for a, b in itertools.combinations(candidates, 2)
            if not self._is_reserved(a, reserved) and not self._is_reserved(b, reserved)
        ]

        eligible = [(a, b) for a, b in allowed if frozenset((a.id, b.id)) not in shown_pairs]
        if not eligible:
            if not self.allow_repeats or not allowed:
                logger.debug("No fresh pair left among %d candidates", len(candidates))
                return None
            logger.debug("Every pair shown, falling back to repeats")
            eligible = allowed

        with_challenger = [(a, b) for a, b in eligible if a.is_challenger or b.is_challenger]
        if with_challenger and self.discovery_rate > 0.0:
            if self._rng.random() < self.discovery_rate:
                logger.debug("Discovery round: %d challenger pairs", len(with_challenger))
                eligible = with_challenger

        a, b = min(eligible, key=self._pair_key)
        return Pair(a.id, b.id)

    def next_pairs(
        self,
        pool: CandidatePool,
        shown_pairs: AbstractSet[frozenset],
        count: int,
        reserved: Iterable[Hashable] = (),
    ) -> list[Pair]:
        """
        Pre-fetch up to count pairs for batch presentation.

        Earlier picks count as shown and their challengers as reserved, so
        the batch holds no repeated pair and no challenger twice.
        """
        shown = set(shown_pairs)
        reserved = set(reserved)
        pairs: list[Pair] = []
        for _ in range(count):
            pair = self.next_pair(pool, shown, reserved)
            if pair is None or pair.key in shown:
                break
            pairs.append(pair)
            shown.add(pair.key)
            reserved.update(pair)
        return pairs

    def _pair_key(self, pair: tuple[Candidate, Candidate]) -> tuple[float, int, float]:
        a, b = pair
        gap = abs(a.rating - b.rating)
        challengers = int(a.is_challenger) + int(b.is_challenger)
        return gap, challengers, self._rng.random()

    @staticmethod
    def _is_reserved(candidate: Candidate, reserved: set) -> bool:
        return candidate.is_challenger and candidate.id in reserved
