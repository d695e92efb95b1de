"""Errors raised by the tournament engine.

Every error is raised before the engine mutates any state, so the session
is exactly as it was before the failing call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from versus.tournament.session import CommitPayload


class TournamentError(Exception):
    """Base class for tournament engine errors."""
    pass


class InsufficientCandidates(TournamentError):
    """Raised when a pool would hold fewer than two distinct candidates."""
    pass


class StalePairError(TournamentError):
    """Raised when a vote, skip or ignore does not match the issued pair."""
    pass


class SessionEndedError(TournamentError):
    """Raised on any mutating call after the session has ended."""
    pass


class PromotionError(TournamentError):
    """Raised when the item creator fails to persist a winning challenger."""
    pass


class CommitFailure(TournamentError):
    """
    Raised when the rating writer did not apply the batch.

    The unchanged payload is attached so the caller can retry the write
    or stash it for later.
    """

    def __init__(self, payload: "CommitPayload", message: str = "rating batch was not applied"):
        super().__init__(message)
        self.payload = payload
