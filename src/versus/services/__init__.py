"""
Services that connect the tournament engine to the database.
"""

from versus.services.tournament_store import (
    SqlCandidateSource,
    SqlItemCreator,
    SqlRatingBatchWriter,
)

__all__ = [
    "SqlCandidateSource",
    "SqlItemCreator",
    "SqlRatingBatchWriter",
]
