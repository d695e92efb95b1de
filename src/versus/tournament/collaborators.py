"""
Interfaces the tournament engine uses to reach storage.

The engine never talks to a database or service directly. It calls these
at three points: session start (loading candidates), each first challenger
win (creating the persisted item) and session end (writing the rating
batch). versus.services.tournament_store has SQL implementations.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Protocol, Sequence, runtime_checkable

from versus.tournament.candidates import Candidate, RatingChange


@runtime_checkable
class CandidateSource(Protocol):
    """Supplies the candidates of a ranking context (one collection)."""

    def load_established(self, context_id: Hashable) -> list[Candidate]:
        """Rated items already in the collection."""
        ...

    def load_challengers(self, context_id: Hashable, exclude_names: Iterable[str]) -> list[Candidate]:
        """Candidates for inclusion, none named like an item in exclude_names."""
        ...


@runtime_checkable
class ItemCreator(Protocol):
    """Persists a challenger the first time it wins."""

    def create_persisted_record(self, challenger: Candidate, rating_at_promotion: float) -> Hashable:
        """
        Create the stored item and return its persisted id.

        Must be idempotent: calling it again for the same challenger returns
        the same id without creating a second record.
        """
        ...


@runtime_checkable
class RatingWriter(Protocol):
    """Applies the rating batch produced when a session ends."""

    def apply_rating_batch(
        self,
        entries: Sequence[RatingChange],
        ignored: Sequence[Hashable] = (),
    ) -> bool:
        """
        Write every entry as one logical batch.

        Returns True when the batch was applied, False when nothing was.
        Should apply all-or-nothing; resending the same batch must be safe.
        """
        ...

