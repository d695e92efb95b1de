"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from versus.db.models import Base
from versus.tournament import Candidate


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory on a single shared connection, so every session
    a collaborator opens sees the same data.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory handed to the SQL collaborators."""
    return sessionmaker(bind=test_engine, autoflush=False)


class FakeItemCreator:
    """Records promotions and hands out predictable persisted ids."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    def create_persisted_record(self, challenger, rating_at_promotion):
        self.calls.append((challenger.id, rating_at_promotion))
        if self.fail:
            raise ConnectionError("catalog service unavailable")
        return f"item-{challenger.id}"


class FakeRatingWriter:
    """Records every batch; returns `result` or raises `error`."""

    def __init__(self, result: bool = True, error: Exception | None = None):
        self.batches = []
        self.result = result
        self.error = error

    def apply_rating_batch(self, entries, ignored=()):
        self.batches.append((tuple(entries), tuple(ignored)))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def item_creator():
    return FakeItemCreator()


@pytest.fixture
def rating_writer():
    return FakeRatingWriter()


@pytest.fixture
def abc_candidates():
    """Two established candidates and one challenger, all at 1200."""
    established = [
        Candidate.established("A", 1200.0, {"name": "Alien"}),
        Candidate.established("B", 1200.0, {"name": "Brazil"}),
    ]
    challengers = [Candidate.challenger("C", {"name": "Cube"})]
    return established, challengers


@pytest.fixture
def make_writer():
    """Build a FakeRatingWriter with a chosen result or error."""
    return FakeRatingWriter


@pytest.fixture
def make_creator():
    """Build a FakeItemCreator, optionally one that always fails."""
    return FakeItemCreator
