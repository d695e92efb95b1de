"""
Tournament session controller.

A session runs one user's comparison rounds over one collection:

1. Ask the matchmaker for a pair (next_pair)
2. The caller shows it and reports a vote, a skip, or an ignore
3. Votes go through the ELO calculator and into the pool's rating store
4. A challenger that wins for the first time is persisted straight away
   through the item creator and from then on counts as established
5. end() closes the session and builds the commit payload; commit() hands
   it to the rating writer as a single batch

States: ACTIVE -> ENDED. Every error is raised before any state changes,
so a failed call can simply be retried or dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Hashable, Mapping, Optional

from versus.config import Settings, get_settings
from versus.elo.calculator import EloCalculator, Outcome
from versus.tournament.candidates import Candidate, Pair, RatingChange
from versus.tournament.collaborators import CandidateSource, ItemCreator, RatingWriter
from versus.tournament.errors import (
    CommitFailure,
    PromotionError,
    SessionEndedError,
    StalePairError,
)
from versus.tournament.matchmaker import Matchmaker
from versus.tournament.pool import CandidatePool

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class RoundOutcome(str, Enum):
    """What the caller did with a presented pair."""

    A_WINS = "A"
    B_WINS = "B"
    SKIPPED = "SKIPPED"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class Round:
    """
    One presented pair and what happened to it.

    Attributes:
        index: Position in the session, starting at 0
        pair: The pair that was shown
        outcome: Vote direction, SKIPPED or IGNORED
        winner_id: Id of the preferred candidate (None unless voted)
        ratings_after: Ratings of both candidates once the round was applied
    """
    index: int
    pair: Pair
    outcome: RoundOutcome
    winner_id: Optional[Hashable] = None
    ratings_after: Mapping[Hashable, float] = field(default_factory=dict, compare=False)

    @property
    def is_vote(self) -> bool:
        return self.outcome in (RoundOutcome.A_WINS, RoundOutcome.B_WINS)


@dataclass(frozen=True)
class CommitPayload:
    """
    Everything a finished session wants written back.

    Attributes:
        entries: Final rating per persisted item whose rating changed, in
                 order of first change
        promotions: Challenger id -> persisted id for every promotion
        ignored: Persisted ids the user asked never to see again
        discarded: Challengers whose provisional rating moved but that never
                   won, so have nothing to write
    """
    entries: tuple[RatingChange, ...] = ()
    promotions: Mapping[Hashable, Hashable] = field(default_factory=dict, compare=False)
    ignored: tuple[Hashable, ...] = ()
    discarded: tuple[Hashable, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.ignored

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "promotions": dict(self.promotions),
            "ignored": list(self.ignored),
            "discarded": list(self.discarded),
        }


class TournamentSession:
    """
    State machine for one comparison session.

    Usage:
        session = TournamentSession.start(pool, Matchmaker(seed=1), item_creator=creator)

        pair = session.next_pair()
        while pair is not None:
            session.vote(pick_winner(pair))   # or session.skip()
            pair = session.next_pair()

        payload = session.end()
        session.commit(rating_writer)

    round_count counts voted rounds only; rounds_presented also counts
    skipped and ignored ones.
    """

    def __init__(
        self,
        pool: CandidatePool,
        matchmaker: Optional[Matchmaker] = None,
        item_creator: Optional[ItemCreator] = None,
        rating_writer: Optional[RatingWriter] = None,
        calculator: Optional[EloCalculator] = None,
    ):
        if pool.challengers() and item_creator is None:
            raise ValueError("a pool with challengers needs an item_creator for promotions")

        self.pool = pool
        self.matchmaker = matchmaker or Matchmaker()
        self.calculator = calculator or EloCalculator()
        self._item_creator = item_creator
        self._rating_writer = rating_writer

        self._state = SessionState.ACTIVE
        self._rounds: list[Round] = []
        self._shown: set[frozenset] = set()
        self._current: Optional[Pair] = None
        self._promotions: dict[Hashable, Hashable] = {}
        self._ignored: list[Hashable] = []
        self._payload: Optional[CommitPayload] = None
        self._committed = False

    @classmethod
    def start(
        cls,
        pool: CandidatePool,
        matchmaker: Optional[Matchmaker] = None,
        item_creator: Optional[ItemCreator] = None,
        rating_writer: Optional[RatingWriter] = None,
        calculator: Optional[EloCalculator] = None,
    ) -> "TournamentSession":
        """Open a session over pool with no rounds played."""
        session = cls(pool, matchmaker, item_creator, rating_writer, calculator)
        logger.info(
            "Tournament session started: %d candidates (%d challengers)",
            len(pool), len(pool.challengers()),
        )
        return session

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def rounds(self) -> tuple[Round, ...]:
        return tuple(self._rounds)

    @property
    def shown_pairs(self) -> frozenset:
        return frozenset(self._shown)

    @property
    def current_pair(self) -> Optional[Pair]:
        """The issued, unresolved pair (None if nothing is issued)."""
        return self._current

    @property
    def pending_promotions(self) -> Mapping[Hashable, Hashable]:
        return MappingProxyType(self._promotions)

    @property
    def round_count(self) -> int:
        """Number of voted rounds."""
        return sum(1 for r in self._rounds if r.is_vote)

    @property
    def rounds_presented(self) -> int:
        return len(self._rounds)

    @property
    def payload(self) -> Optional[CommitPayload]:
        """Commit payload, available once the session has ended."""
        return self._payload

    @property
    def committed(self) -> bool:
        return self._committed

    def standings(self) -> list[Candidate]:
        """Active candidates, highest rating first."""
        return sorted(self.pool.active(), key=lambda c: c.rating, reverse=True)

    # ------------------------------------------------------------------
    # Round flow
    # ------------------------------------------------------------------

    def next_pair(self) -> Optional[Pair]:
        """
        Return the pair to present.

        Re-issues the current pair while it is unresolved; otherwise asks the
        matchmaker. None means the session is exhausted (or ended).
        """
        if not self.is_active:
            return None
        if self._current is None:
            self._current = self.matchmaker.next_pair(self.pool, self._shown)
            if self._current is not None:
                logger.debug("Round %d: issued %r", len(self._rounds) + 1, self._current)
        return self._current

    def vote(self, winner_id: Hashable, loser_id: Optional[Hashable] = None) -> Round:
        """
        Record that winner_id was preferred over the other half of the pair.

        Args:
            winner_id: Preferred candidate, must be in the current pair
            loser_id: Optional check that the caller saw the same pair

        Returns:
            The recorded Round

        Raises:
            SessionEndedError: The session has ended
            StalePairError: No pair issued, or the ids do not match it
            PromotionError: The winning challenger could not be persisted.
                            Nothing was applied; the pair stays current.
        """
        self._ensure_active()
        pair = self._require_pair(winner_id)
        if loser_id is not None and loser_id != pair.other(winner_id):
            raise StalePairError(f"{winner_id!r} vs {loser_id!r} is not the current pair {pair!r}")

        outcome = RoundOutcome.A_WINS if winner_id == pair.first else RoundOutcome.B_WINS
        rating_a = self.pool.rating(pair.first)
        rating_b = self.pool.rating(pair.second)
        new_a, new_b = self.calculator.update(rating_a, rating_b, Outcome(outcome.value))
        winner_rating = new_a if outcome is RoundOutcome.A_WINS else new_b

        winner = self.pool.get(winner_id)
        if winner.is_challenger:
            persisted_id = self._create_record(winner, winner_rating)
            self.pool.promote(winner_id, persisted_id)
            self._promotions[winner_id] = persisted_id
            logger.info(
                "Challenger %r promoted as %r at rating %.2f",
                winner_id, persisted_id, winner_rating,
            )

        self.pool.apply_ratings({pair.first: new_a, pair.second: new_b})
        return self._record(pair, outcome, winner_id)

    def skip(self) -> Round:
        """
        Record the current pair as skipped.

        No rating moves, but the pair counts as shown and is not offered
        again.
        """
        self._ensure_active()
        pair = self._require_pair()
        return self._record(pair, RoundOutcome.SKIPPED)

    def ignore(self, candidate_id: Hashable) -> Round:
        """
        Drop candidate_id from the rest of the session.

        The current pair is recorded as IGNORED (no rating change) and the
        candidate's persisted id, if it has one, is reported in the payload.
        """
        self._ensure_active()
        pair = self._require_pair(candidate_id)
        self.pool.ignore(candidate_id)
        self._ignored.append(candidate_id)
        logger.info("Candidate %r ignored for the rest of the session", candidate_id)
        return self._record(pair, RoundOutcome.IGNORED)

    def end(self) -> CommitPayload:
        """
        Close the session and build the commit payload.

        Valid at any point while active, including before the first vote
        (the payload is then empty).
        """
        self._ensure_active()
        self._state = SessionState.ENDED
        self._current = None
        self._payload = self._build_payload()
        logger.info(
            "Tournament session ended after %d rounds (%d voted): %d rating changes, "
            "%d promotions, %d discarded challengers",
            self.rounds_presented, self.round_count, len(self._payload),
            len(self._payload.promotions), len(self._payload.discarded),
        )
        return self._payload

    def commit(self, rating_writer: Optional[RatingWriter] = None) -> CommitPayload:
        """
        Hand the payload to the rating writer as one batch.

        Ends the session first if it is still active. The engine never
        retries: on failure CommitFailure carries the unchanged payload, and
        calling commit() again resends exactly the same batch.

        Raises:
            CommitFailure: The writer returned False or raised
        """
        writer = rating_writer or self._rating_writer
        if writer is None:
            raise ValueError("no rating_writer configured for commit")
        if self.is_active:
            self.end()
        payload = self._payload

        if payload.is_empty:
            logger.info("Nothing to commit")
            self._committed = True
            return payload

        try:
            applied = writer.apply_rating_batch(payload.entries, ignored=payload.ignored)
        except Exception as exc:
            logger.error("Rating batch failed: %s", exc)
            raise CommitFailure(payload, f"rating batch failed: {exc}") from exc
        if not applied:
            logger.error("Rating batch of %d entries was not applied", len(payload))
            raise CommitFailure(payload)

        self._committed = True
        logger.info("Committed %d rating changes", len(payload))
        return payload

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise SessionEndedError("session has ended")

    def _require_pair(self, candidate_id: Optional[Hashable] = None) -> Pair:
        pair = self._current
        if pair is None:
            raise StalePairError("no pair has been issued")
        if candidate_id is not None and candidate_id not in pair:
            raise StalePairError(f"{candidate_id!r} is not in the current pair {pair!r}")
        return pair

    def _create_record(self, challenger: Candidate, rating: float) -> Hashable:
        try:
            return self._item_creator.create_persisted_record(challenger, rating)
        except Exception as exc:
            raise PromotionError(f"could not persist challenger {challenger.id!r}: {exc}") from exc

    def _record(
        self,
        pair: Pair,
        outcome: RoundOutcome,
        winner_id: Optional[Hashable] = None,
    ) -> Round:
        round_ = Round(
            index=len(self._rounds),
            pair=pair,
            outcome=outcome,
            winner_id=winner_id,
            ratings_after=MappingProxyType({cid: self.pool.rating(cid) for cid in pair}),
        )
        self._rounds.append(round_)
        self._shown.add(pair.key)
        self._current = None
        logger.debug("Round %d: %r -> %s", round_.index + 1, pair, outcome.value)
        return round_

    def _build_payload(self) -> CommitPayload:
        entries = []
        discarded = []
        for candidate_id in self.pool.store.changed():
            persisted_id = self.pool.persisted_id(candidate_id)
            if persisted_id is None:
                discarded.append(candidate_id)
                continue
            entries.append(RatingChange(persisted_id, self.pool.rating(candidate_id)))

        ignored = tuple(
            self.pool.persisted_id(cid)
            for cid in self._ignored
            if self.pool.persisted_id(cid) is not None
        )
        return CommitPayload(
            entries=tuple(entries),
            promotions=MappingProxyType(dict(self._promotions)),
            ignored=ignored,
            discarded=tuple(discarded),
        )


def start_session(
    source: CandidateSource,
    context_id: Hashable,
    item_creator: Optional[ItemCreator] = None,
    rating_writer: Optional[RatingWriter] = None,
    seed: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> TournamentSession:
    """
    Load a collection's candidates and open a session with configured constants.

    Challengers are requested with the names of the established items as
    the exclusion list, so the user is never asked to discover something
    they already own.

    Raises:
        InsufficientCandidates: Fewer than two candidates were loaded
    """
    cfg = settings or get_settings()
    established = list(source.load_established(context_id))
    exclude_names = [c.name for c in established if c.name]
    challengers = list(source.load_challengers(context_id, exclude_names))

    pool = CandidatePool(established, challengers, default_rating=cfg.default_rating)
    matchmaker = Matchmaker(
        seed=seed,
        discovery_rate=cfg.discovery_rate,
        allow_repeats=cfg.allow_repeat_pairs,
    )
    calculator = EloCalculator(k_factor=cfg.elo_k_factor, scale=cfg.elo_scale)
    return TournamentSession.start(pool, matchmaker, item_creator, rating_writer, calculator)
