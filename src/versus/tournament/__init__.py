"""
Pairwise comparison tournaments.

A tournament session shows a user two items at a time, updates ELO ratings
from their votes, promotes discovered challengers that win, and returns the
rating changes as one batch at the end.
"""

from versus.tournament.candidates import Candidate, Origin, Pair, RatingChange
from versus.tournament.collaborators import CandidateSource, ItemCreator, RatingWriter
from versus.tournament.errors import (
    CommitFailure,
    InsufficientCandidates,
    PromotionError,
    SessionEndedError,
    StalePairError,
    TournamentError,
)
from versus.tournament.matchmaker import Matchmaker
from versus.tournament.pool import CandidatePool
from versus.tournament.session import (
    CommitPayload,
    Round,
    RoundOutcome,
    SessionState,
    TournamentSession,
    start_session,
)
from versus.tournament.store import RatingStore

__all__ = [
    "Candidate",
    "Origin",
    "Pair",
    "RatingChange",
    "CandidateSource",
    "ItemCreator",
    "RatingWriter",
    "TournamentError",
    "InsufficientCandidates",
    "StalePairError",
    "SessionEndedError",
    "PromotionError",
    "CommitFailure",
    "Matchmaker",
    "CandidatePool",
    "RatingStore",
    "CommitPayload",
    "Round",
    "RoundOutcome",
    "SessionState",
    "TournamentSession",
    "start_session",
]
