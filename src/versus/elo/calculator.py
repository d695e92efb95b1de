"""
ELO rating calculator for pairwise preference votes.

The ELO formula:
  Expected score: E_A = 1 / (1 + 10^((R_B - R_A) / S))
  New rating: R'_A = R_A + K * (actual - expected)

Where:
  R_A, R_B = Current ratings of candidates A and B
  K = How much ratings change (volatility factor)
  S = Spread factor (how rating difference maps to win probability)

Ratings are plain floats. Nothing here rounds or clamps; rounding for
display belongs to whoever renders the number.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from versus.elo.constants import DEFAULT_K_FACTOR, DEFAULT_SCALE


class Outcome(str, Enum):
    """Result of a decided comparison between A and B."""

    A_WINS = "A"
    B_WINS = "B"


def expected_score(rating_a: float, rating_b: float, scale: float = DEFAULT_SCALE) -> float:
    """Probability that A is preferred over B."""
    try:
        return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / scale))
    except OverflowError:
        # Only a huge positive exponent overflows: A is a certain loser
        return 0.0


def update_ratings(
    rating_a: float,
    rating_b: float,
    outcome: Outcome,
    k_factor: float = DEFAULT_K_FACTOR,
    scale: float = DEFAULT_SCALE,
) -> tuple[float, float]:
    """
    Compute both ratings after a decided comparison.

    Args:
        rating_a: A's rating before the vote
        rating_b: B's rating before the vote
        outcome: Outcome.A_WINS or Outcome.B_WINS
        k_factor: Step size
        scale: Spread factor

    Returns:
        Tuple of (new_rating_a, new_rating_b)

    Raises:
        ValueError: If outcome is not a decided outcome
    """
    try:
        outcome = Outcome(outcome)
    except ValueError:
        raise ValueError(f"outcome must be 'A' or 'B', got {outcome!r}") from None

    exp_a = expected_score(rating_a, rating_b, scale)
    exp_b = 1.0 - exp_a

    if outcome is Outcome.A_WINS:
        actual_a, actual_b = 1.0, 0.0
    else:
        actual_a, actual_b = 0.0, 1.0

    new_a = rating_a + k_factor * (actual_a - exp_a)
    new_b = rating_b + k_factor * (actual_b - exp_b)
    return new_a, new_b


@dataclass(frozen=True)
class EloUpdate:
    """
    Result of an ELO calculation.

    Carries the before/after ratings plus the expected scores so callers
    can log or audit what happened in a round.
    """
    # Ratings before the vote
    rating_a_before: float
    rating_b_before: float

    # Ratings after the vote
    rating_a_after: float
    rating_b_after: float

    # Expected preference probabilities (before the vote)
    expected_a: float
    expected_b: float

    outcome: Outcome

    @property
    def rating_a_change(self) -> float:
        return self.rating_a_after - self.rating_a_before

    @property
    def rating_b_change(self) -> float:
        return self.rating_b_after - self.rating_b_before

    @property
    def was_upset(self) -> bool:
        """Whether the lower-rated candidate won."""
        if self.outcome is Outcome.A_WINS:
            return self.rating_a_before < self.rating_b_before
        return self.rating_b_before < self.rating_a_before

    def __repr__(self) -> str:
        return (
            f"<EloUpdate(A: {self.rating_a_before:.1f} -> {self.rating_a_after:.1f}, "
            f"B: {self.rating_b_before:.1f} -> {self.rating_b_after:.1f}, "
            f"outcome={self.outcome.value})>"
        )


class EloCalculator:
    """
    ELO calculator bound to one K and S pair.

    Usage:
        calculator = EloCalculator()

        result = calculator.calculate(1216.0, 1184.0, Outcome.B_WINS)
        print(f"A: {result.rating_a_before} -> {result.rating_a_after}")
        print(f"Expected A win prob: {result.expected_a:.1%}")
    """

    def __init__(self, k_factor: Optional[float] = None, scale: Optional[float] = None):
        self.k_factor = DEFAULT_K_FACTOR if k_factor is None else float(k_factor)
        self.scale = DEFAULT_SCALE if scale is None else float(scale)
        if self.k_factor <= 0 or self.scale <= 0:
            raise ValueError("k_factor and scale must be positive")

    def update(self, rating_a: float, rating_b: float, outcome: Outcome) -> tuple[float, float]:
        """Return (new_rating_a, new_rating_b)."""
        return update_ratings(rating_a, rating_b, outcome, self.k_factor, self.scale)

    def expected_score(self, rating_a: float, rating_b: float) -> float:
        return expected_score(rating_a, rating_b, self.scale)

    def calculate(self, rating_a: float, rating_b: float, outcome: Outcome) -> EloUpdate:
        """
        Calculate new ratings after a vote, keeping the calculation details.

        A candidate gains more for beating a higher-rated opponent and loses
        more for losing to a lower-rated one.
        """
        new_a, new_b = self.update(rating_a, rating_b, outcome)
        exp_a = self.expected_score(rating_a, rating_b)
        return EloUpdate(
            rating_a_before=rating_a,
            rating_b_before=rating_b,
            rating_a_after=new_a,
            rating_b_after=new_b,
            expected_a=exp_a,
            expected_b=1.0 - exp_a,
            outcome=Outcome(outcome),
        )
