"""
Versus - Pairwise Comparison Ranking Engine

Lets users rank the items of a collection by repeatedly picking the better
of two. Ratings follow the ELO model and are written back once per session.

Main components:
- elo: ELO rating calculation
- tournament: rating store, candidate pool, matchmaker and session controller
- db: SQLAlchemy models and session management
- services: SQL implementations of the tournament collaborators
"""

__version__ = "1.0.0"
