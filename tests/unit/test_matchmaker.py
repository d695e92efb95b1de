"""
Unit tests for Matchmaker pair selection.
"""

import itertools

import pytest

from versus.tournament import Candidate, CandidatePool, Matchmaker, Pair


def _pool(ratings, challengers=()):
    return CandidatePool(
        [Candidate.established(cid, rating) for cid, rating in ratings.items()],
        [Candidate.challenger(cid) for cid in challengers],
    )


@pytest.fixture
def spread_pool():
    return _pool({"A": 1000.0, "B": 1300.0, "C": 1310.0, "D": 1600.0})


def test_smallest_gap_first(spread_pool):
    pair = Matchmaker(seed=1).next_pair(spread_pool, set())

    assert pair.key == {"B", "C"}


def test_shown_pair_is_not_repeated(spread_pool):
    pair = Matchmaker(seed=1).next_pair(spread_pool, {frozenset({"B", "C"})})

    # C/D (290) is the next smallest gap
    assert pair.key == {"C", "D"}


def test_exhausted_returns_none(spread_pool):
    every_pair = {frozenset(p) for p in itertools.combinations("ABCD", 2)}

    assert Matchmaker(seed=1).next_pair(spread_pool, every_pair) is None


def test_repeat_fallback(spread_pool):
    every_pair = {frozenset(p) for p in itertools.combinations("ABCD", 2)}

    pair = Matchmaker(seed=1, allow_repeats=True).next_pair(spread_pool, every_pair)

    assert pair.key == {"B", "C"}


def test_full_walk_never_repeats():
    pool = _pool({cid: 1200.0 + 7 * i for i, cid in enumerate("ABCDEF")})
    matchmaker = Matchmaker(seed=3)
    shown = set()

    while (pair := matchmaker.next_pair(pool, shown)) is not None:
        assert pair.key not in shown
        shown.add(pair.key)

    assert len(shown) == 15


def test_same_seed_same_pairs():
    pool = _pool({cid: 1200.0 for cid in "ABCDEF"})

    first = Matchmaker(seed=99).next_pairs(pool, set(), count=3)
    second = Matchmaker(seed=99).next_pairs(pool, set(), count=3)

    assert first == second
    assert len(first) == 3


def test_tie_prefers_established_pair(abc_candidates):
    pool = CandidatePool(*abc_candidates)

    for seed in range(10):
        assert Matchmaker(seed=seed).next_pair(pool, set()) == Pair("A", "B")


def test_discovery_round_includes_challenger(abc_candidates):
    pool = CandidatePool(*abc_candidates)

    pair = Matchmaker(seed=5, discovery_rate=1.0).next_pair(pool, set())

    assert "C" in pair


def test_reserved_challenger_is_not_paired(abc_candidates):
    pool = CandidatePool(*abc_candidates)

    pair = Matchmaker(seed=5, discovery_rate=1.0).next_pair(pool, set(), reserved={"C"})

    assert pair == Pair("A", "B")


def test_batch_holds_each_challenger_once():
    pool = _pool({cid: 1200.0 for cid in "ABDE"}, challengers=["C"])

    pairs = Matchmaker(seed=2, discovery_rate=1.0).next_pairs(pool, set(), count=4)

    assert sum(1 for p in pairs if "C" in p) == 1
    assert len({p.key for p in pairs}) == len(pairs)
    assert "C" in pairs[0]


def test_ignored_candidate_left_out(spread_pool):
    spread_pool.ignore("C")

    pair = Matchmaker(seed=1).next_pair(spread_pool, set())

    # Without C, A/B and B/D tie at 300
    assert "C" not in pair
    assert pair.key in ({"A", "B"}, {"B", "D"})


def test_does_not_touch_ratings(spread_pool):
    before = spread_pool.store.snapshot()

    Matchmaker(seed=1).next_pairs(spread_pool, set(), count=6)

    assert spread_pool.store.snapshot() == before
    assert spread_pool.store.changed() == []


def test_invalid_discovery_rate():
    with pytest.raises(ValueError):
        Matchmaker(discovery_rate=1.5)
