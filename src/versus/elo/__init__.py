"""
ELO rating system module.

Implements the standard logistic ELO update used for pairwise preference
votes:
- Base-10 logistic expected score with a 400 point spread
- Fixed K-factor step toward the observed outcome
"""

from versus.elo.calculator import (
    EloCalculator,
    EloUpdate,
    Outcome,
    expected_score,
    update_ratings,
)
from versus.elo.constants import DEFAULT_ELO, DEFAULT_K_FACTOR, DEFAULT_SCALE

__all__ = [
    "EloCalculator",
    "EloUpdate",
    "Outcome",
    "expected_score",
    "update_ratings",
    "DEFAULT_ELO",
    "DEFAULT_K_FACTOR",
    "DEFAULT_SCALE",
]
