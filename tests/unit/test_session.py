"""
Unit tests for TournamentSession.

Covers the round flow (vote, skip, ignore), challenger promotion, the
end-of-session payload and commit failure handling.
"""

import pytest

from versus.config import Settings
from versus.tournament import (
    Candidate,
    CandidatePool,
    CommitFailure,
    InsufficientCandidates,
    Matchmaker,
    Origin,
    Pair,
    PromotionError,
    RatingChange,
    RoundOutcome,
    SessionEndedError,
    SessionState,
    StalePairError,
    TournamentSession,
    start_session,
)


@pytest.fixture
def abc_session(abc_candidates, item_creator, rating_writer):
    return TournamentSession.start(
        CandidatePool(*abc_candidates),
        Matchmaker(seed=11),
        item_creator=item_creator,
        rating_writer=rating_writer,
    )


@pytest.fixture
def big_session(rating_writer):
    pool = CandidatePool(
        [Candidate.established(f"item-{i}", 1200.0 + 10 * i) for i in range(10)],
    )
    return TournamentSession.start(pool, Matchmaker(seed=4), rating_writer=rating_writer)


class TestScenario:
    """The A/B/C walkthrough: two established items and one challenger."""

    def test_two_rounds_then_end(self, abc_session, item_creator):
        # Round 1: all at 1200, the established pair wins the tie
        assert abc_session.next_pair() == Pair("A", "B")
        abc_session.vote("A")

        assert abc_session.pool.rating("A") == 1216.0
        assert abc_session.pool.rating("B") == 1184.0

        # Round 2: C against whichever of A/B the seed picks (both 16 away)
        pair = abc_session.next_pair()
        assert "C" in pair
        abc_session.vote("C")

        assert item_creator.calls == [("C", abc_session.pool.rating("C"))]
        assert abc_session.pool.rating("C") > 1200.0
        assert abc_session.pool.get("C").origin is Origin.ESTABLISHED
        assert abc_session.pending_promotions == {"C": "item-C"}

        payload = abc_session.end()

        assert [entry.persisted_id for entry in payload.entries] == ["A", "B", "item-C"]
        assert payload.entries[0] == RatingChange("A", abc_session.pool.rating("A"))
        assert payload.discarded == ()
        assert abc_session.state is SessionState.ENDED


class TestVote:
    """Tests for vote()."""

    def test_round_is_recorded(self, abc_session):
        pair = abc_session.next_pair()
        round_ = abc_session.vote(pair.second)

        assert round_.index == 0
        assert round_.pair == pair
        assert round_.outcome is RoundOutcome.B_WINS
        assert round_.winner_id == pair.second
        assert round_.ratings_after == {pair.first: 1184.0, pair.second: 1216.0}
        assert abc_session.rounds == (round_,)
        assert pair.key in abc_session.shown_pairs
        assert abc_session.current_pair is None

    def test_vote_without_issued_pair(self, abc_session):
        with pytest.raises(StalePairError):
            abc_session.vote("A")

    def test_stale_vote_leaves_state_unchanged(self, abc_session):
        abc_session.next_pair()
        before = abc_session.pool.store.snapshot()

        with pytest.raises(StalePairError):
            abc_session.vote("C")

        assert abc_session.rounds == ()
        assert abc_session.shown_pairs == frozenset()
        assert abc_session.pool.store.snapshot() == before
        assert abc_session.current_pair == Pair("A", "B")

    def test_loser_must_match(self, abc_session):
        abc_session.next_pair()

        with pytest.raises(StalePairError):
            abc_session.vote("A", loser_id="C")

        abc_session.vote("A", loser_id="B")
        assert abc_session.round_count == 1

    def test_double_submission_is_stale(self, abc_session):
        abc_session.next_pair()
        abc_session.vote("A")

        with pytest.raises(StalePairError):
            abc_session.vote("A")

    def test_next_pair_reissues_unresolved_pair(self, abc_session):
        first = abc_session.next_pair()

        assert abc_session.next_pair() is first


class TestSkip:
    """Tests for skip()."""

    def test_skip_is_rating_neutral(self, big_session):
        big_session.next_pair()
        big_session.vote(big_session.current_pair.first)
        pair = big_session.next_pair()
        before = big_session.pool.store.snapshot()
        shown_before = big_session.shown_pairs

        round_ = big_session.skip()

        assert round_.outcome is RoundOutcome.SKIPPED
        assert round_.winner_id is None
        assert big_session.pool.store.snapshot() == before
        assert big_session.shown_pairs == shown_before | {pair.key}

    def test_skipped_pair_not_offered_again(self, big_session):
        skipped = big_session.next_pair()
        big_session.skip()

        while (pair := big_session.next_pair()) is not None:
            assert pair.key != skipped.key
            big_session.skip()

    def test_skip_without_pair(self, abc_session):
        with pytest.raises(StalePairError):
            abc_session.skip()

    def test_round_counter_counts_votes(self, big_session):
        big_session.next_pair()
        big_session.skip()
        big_session.next_pair()
        big_session.vote(big_session.current_pair.first)
        big_session.next_pair()
        big_session.skip()

        assert big_session.round_count == 1
        assert big_session.rounds_presented == 3


class TestIgnore:
    """Tests for ignore()."""

    def test_ignored_candidate_never_returns(self, big_session):
        pair = big_session.next_pair()
        big_session.ignore(pair.first)

        while (next_pair := big_session.next_pair()) is not None:
            assert pair.first not in next_pair
            big_session.vote(next_pair.second)

        payload = big_session.end()
        assert payload.ignored == (pair.first,)
        assert big_session.rounds[0].outcome is RoundOutcome.IGNORED

    def test_ignore_outside_pair_is_stale(self, big_session):
        pair = big_session.next_pair()
        outsider = next(c.id for c in big_session.pool.all() if c.id not in pair)

        with pytest.raises(StalePairError):
            big_session.ignore(outsider)

        assert not big_session.pool.is_ignored(outsider)

    def test_ignored_challenger_has_nothing_to_write(self, abc_session):
        abc_session.next_pair()
        abc_session.vote("A")
        abc_session.next_pair()
        abc_session.ignore("C")

        payload = abc_session.end()

        assert payload.ignored == ()


class TestPromotion:
    """Tests for challenger promotion."""

    def test_promotion_happens_once(self, abc_session, item_creator):
        while (pair := abc_session.next_pair()) is not None:
            abc_session.vote("C" if "C" in pair else pair.first)

        wins = [r for r in abc_session.rounds if r.winner_id == "C"]
        assert len(wins) == 2
        assert len(item_creator.calls) == 1

    def test_promotion_uses_post_vote_rating(self, abc_candidates, item_creator):
        session = TournamentSession.start(
            CandidatePool(*abc_candidates),
            Matchmaker(seed=0, discovery_rate=1.0),
            item_creator=item_creator,
        )
        session.next_pair()
        session.vote("C")

        assert item_creator.calls == [("C", 1216.0)]

    def test_failed_promotion_applies_nothing(self, abc_candidates, make_creator):
        creator = make_creator(fail=True)
        session = TournamentSession.start(
            CandidatePool(*abc_candidates),
            Matchmaker(seed=0, discovery_rate=1.0),
            item_creator=creator,
        )
        pair = session.next_pair()
        before = session.pool.store.snapshot()

        with pytest.raises(PromotionError) as excinfo:
            session.vote("C")

        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert session.rounds == ()
        assert session.pool.store.snapshot() == before
        assert session.pool.get("C").is_challenger
        assert session.current_pair == pair

        # The same vote goes through once the creator recovers
        creator.fail = False
        session.vote("C")
        assert session.pending_promotions == {"C": "item-C"}

    def test_losing_challenger_is_discarded(self, abc_candidates, item_creator):
        session = TournamentSession.start(
            CandidatePool(*abc_candidates),
            Matchmaker(seed=0, discovery_rate=1.0),
            item_creator=item_creator,
        )
        pair = session.next_pair()
        session.vote(pair.other("C"))

        payload = session.end()

        assert payload.discarded == ("C",)
        assert "C" not in [e.persisted_id for e in payload.entries]
        assert item_creator.calls == []

    def test_challengers_need_creator(self, abc_candidates):
        with pytest.raises(ValueError):
            TournamentSession.start(CandidatePool(*abc_candidates))


class TestEnd:
    """Tests for end() and the commit payload."""

    def test_plain_established_candidates_reach_payload(self):
        pool = CandidatePool(
            [
                Candidate(id="A", origin=Origin.ESTABLISHED, rating=1200.0),
                Candidate(id="B", origin=Origin.ESTABLISHED, rating=1200.0),
            ],
        )
        session = TournamentSession.start(pool)
        session.next_pair()
        session.vote("A")

        payload = session.end()

        assert payload.entries == (RatingChange("A", 1216.0), RatingChange("B", 1184.0))
        assert payload.discarded == ()

    def test_end_after_zero_rounds(self, big_session, rating_writer):
        payload = big_session.end()

        assert payload.entries == ()
        assert payload.is_empty

        big_session.commit()
        assert rating_writer.batches == []
        assert big_session.committed

    def test_end_with_pair_issued(self, big_session):
        big_session.next_pair()

        payload = big_session.end()

        assert payload.entries == ()
        assert big_session.current_pair is None

    def test_payload_covers_exactly_changed_candidates(self, big_session):
        for _ in range(4):
            pair = big_session.next_pair()
            big_session.vote(pair.first)

        payload = big_session.end()

        changed = {cid for r in big_session.rounds for cid in r.pair}
        assert {e.persisted_id for e in payload.entries} == changed
        for entry in payload.entries:
            assert entry.final_rating == big_session.pool.rating(entry.persisted_id)

    def test_mutations_after_end(self, big_session):
        pair = big_session.next_pair()
        big_session.end()

        with pytest.raises(SessionEndedError):
            big_session.vote(pair.first)
        with pytest.raises(SessionEndedError):
            big_session.skip()
        with pytest.raises(SessionEndedError):
            big_session.ignore(pair.first)
        with pytest.raises(SessionEndedError):
            big_session.end()
        assert big_session.next_pair() is None

    def test_no_repeats_in_long_session(self, big_session):
        for _ in range(5):
            pair = big_session.next_pair()
            big_session.vote(pair.second)

        keys = [r.pair.key for r in big_session.rounds]
        assert len(keys) == len(set(keys))

    def test_standings_follow_votes(self, big_session):
        pair = big_session.next_pair()
        big_session.vote(pair.first)

        ratings = [c.rating for c in big_session.standings()]
        assert ratings == sorted(ratings, reverse=True)

    def test_payload_to_dict(self, abc_session):
        abc_session.next_pair()
        abc_session.vote("B")

        data = abc_session.end().to_dict()

        assert data["entries"] == [
            {"persisted_id": "A", "final_rating": 1184.0},
            {"persisted_id": "B", "final_rating": 1216.0},
        ]
        assert data["promotions"] == {}


class TestCommit:
    """Tests for commit()."""

    def test_commit_sends_one_batch(self, abc_session, rating_writer):
        abc_session.next_pair()
        abc_session.vote("A")

        payload = abc_session.commit()

        assert abc_session.state is SessionState.ENDED
        assert rating_writer.batches == [(payload.entries, ())]
        assert abc_session.committed

    def test_failed_commit_returns_payload(self, big_session, make_writer):
        big_session.next_pair()
        big_session.vote(big_session.current_pair.first)
        payload = big_session.end()

        with pytest.raises(CommitFailure) as excinfo:
            big_session.commit(make_writer(result=False))

        assert excinfo.value.payload == payload
        assert not big_session.committed

        # Resending the unchanged payload is safe
        retry = make_writer()
        big_session.commit(retry)
        assert retry.batches == [(payload.entries, ())]
        assert big_session.committed

    def test_writer_exception_becomes_commit_failure(self, big_session, make_writer):
        big_session.next_pair()
        big_session.vote(big_session.current_pair.first)

        with pytest.raises(CommitFailure) as excinfo:
            big_session.commit(make_writer(error=TimeoutError("db timeout")))

        assert isinstance(excinfo.value.__cause__, TimeoutError)
        assert len(excinfo.value.payload) == 2

    def test_commit_without_writer(self, abc_candidates, item_creator):
        session = TournamentSession.start(CandidatePool(*abc_candidates), item_creator=item_creator)

        with pytest.raises(ValueError):
            session.commit()

        assert session.is_active


class _StaticSource:
    def __init__(self, established, challengers):
        self.established = established
        self.challengers = challengers
        self.exclusions = None

    def load_established(self, context_id):
        return list(self.established)

    def load_challengers(self, context_id, exclude_names):
        self.exclusions = list(exclude_names)
        return list(self.challengers)


class TestStartSession:
    """Tests for start_session()."""

    def test_builds_session_from_source(self, abc_candidates, item_creator):
        source = _StaticSource(*abc_candidates)
        session = start_session(
            source,
            "collection-1",
            item_creator=item_creator,
            seed=3,
            settings=Settings(discovery_rate=0.0, elo_k_factor=16.0),
        )

        assert source.exclusions == ["Alien", "Brazil"]
        assert len(session.pool) == 3
        assert session.matchmaker.discovery_rate == 0.0

        session.next_pair()
        session.vote("A")
        assert session.pool.rating("A") == 1208.0

    def test_too_few_candidates(self, item_creator):
        source = _StaticSource([Candidate.established("A", 1200.0)], [])

        with pytest.raises(InsufficientCandidates):
            start_session(source, "collection-1", item_creator=item_creator)
