#!/usr/bin/env python3
"""
Simulate tournament sessions against a hidden preference order.

Each candidate gets a hidden "true" strength. A simulated voter prefers the
stronger of the two with ELO-style probability (sharpened or blurred by
--noise). After every session we measure how much of the true order the
ratings recovered: the share of candidate pairs whose ratings are ordered
the same way as their true strengths (1.0 = perfect, 0.5 = random).

Useful for checking how the pairing policy and K-factor behave before
changing them.

Usage:
    # 12 items, 15 rounds, 50 seeds
    python scripts/simulate_tournament.py

    # Add 4 challengers and force more discovery rounds
    python scripts/simulate_tournament.py --challengers 4 --discovery-rate 0.4

    # Compare K-factors
    python scripts/simulate_tournament.py --k-factor 16
    python scripts/simulate_tournament.py --k-factor 48
"""
from __future__ import annotations

import argparse
import itertools
import logging
import random
import statistics
import sys
from pathlib import Path

# Add src to path so this script can be run directly
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from versus.config import settings
from versus.elo.calculator import EloCalculator, expected_score
from versus.tournament import (
    Candidate,
    CandidatePool,
    Matchmaker,
    TournamentSession,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


class _CountingCreator:
    """Stands in for storage: hands out sequential ids for promotions."""

    def __init__(self) -> None:
        self.created: dict = {}

    def create_persisted_record(self, challenger: Candidate, rating_at_promotion: float) -> str:
        return self.created.setdefault(challenger.id, f"item-{len(self.created) + 1}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Measure how well tournament sessions recover a hidden ranking.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--items", type=int, default=12, help="Established candidates per session")
    parser.add_argument("--challengers", type=int, default=0, help="Challenger candidates per session")
    parser.add_argument("--rounds", type=int, default=15, help="Votes per session")
    parser.add_argument("--seeds", type=int, default=50, help="Number of simulated sessions")
    parser.add_argument("--k-factor", type=float, default=settings.elo_k_factor)
    parser.add_argument("--discovery-rate", type=float, default=settings.discovery_rate)
    parser.add_argument(
        "--noise",
        type=float,
        default=1.0,
        help="Voter noise: spread multiplier on the true strength gap (higher = noisier)",
    )
    parser.add_argument("--skip-rate", type=float, default=0.0, help="Chance the voter skips a pair")
    return parser


def _agreement(ratings: dict, strengths: dict) -> float:
    """Share of pairs ordered the same by ratings and by true strength."""
    agree = total = 0
    for a, b in itertools.combinations(ratings, 2):
        if strengths[a] == strengths[b]:
            continue
        total += 1
        if (ratings[a] - ratings[b]) * (strengths[a] - strengths[b]) > 0:
            agree += 1
    return agree / total if total else 1.0


def run_session(seed: int, args: argparse.Namespace) -> tuple[float, int, int]:
    """Run one simulated session. Returns (agreement, votes, promotions)."""
    rng = random.Random(seed)
    ids = [f"item-{i}" for i in range(args.items)] + [f"challenger-{i}" for i in range(args.challengers)]
    strengths = {cid: rng.gauss(0.0, 200.0) for cid in ids}

    established = [
        Candidate.established(cid, settings.default_rating, {"name": cid})
        for cid in ids[: args.items]
    ]
    challengers = [Candidate.challenger(cid, {"name": cid}) for cid in ids[args.items:]]
    pool = CandidatePool(established, challengers, default_rating=settings.default_rating)

    session = TournamentSession.start(
        pool,
        Matchmaker(seed=seed, discovery_rate=args.discovery_rate),
        item_creator=_CountingCreator(),
        calculator=EloCalculator(k_factor=args.k_factor, scale=settings.elo_scale),
    )

    while session.round_count < args.rounds:
        pair = session.next_pair()
        if pair is None:
            break
        if rng.random() < args.skip_rate:
            session.skip()
            continue
        p_first = expected_score(
            strengths[pair.first], strengths[pair.second], settings.elo_scale * args.noise
        )
        session.vote(pair.first if rng.random() < p_first else pair.second)

    payload = session.end()
    ratings = {c.id: c.rating for c in pool.all()}
    return _agreement(ratings, strengths), session.round_count, len(payload.promotions)


def main() -> int:
    args = _build_parser().parse_args()
    if args.items + args.challengers < 2:
        print("ERROR: need at least 2 candidates")
        return 1

    results = [run_session(seed, args) for seed in range(args.seeds)]
    agreements = [r[0] for r in results]

    print(
        f"SIMULATION  items={args.items}  challengers={args.challengers}  rounds={args.rounds}  "
        f"k={args.k_factor}  discovery={args.discovery_rate}  noise={args.noise}"
    )
    print(f"  Sessions:            {len(results)}")
    print(f"  Mean votes:          {statistics.mean(r[1] for r in results):.1f}")
    print(f"  Mean promotions:     {statistics.mean(r[2] for r in results):.2f}")
    print(f"  Order agreement:     {statistics.mean(agreements):.3f}")
    if len(agreements) > 1:
        print(f"  Agreement stdev:     {statistics.stdev(agreements):.3f}")
    print(f"  Worst / best:        {min(agreements):.3f} / {max(agreements):.3f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
