"""
conftest.py - Shared pytest fixtures for pokerdb tests

Provides:
- A deterministic clock for session timestamps
- Settings and a PersistenceStore rooted in tmp_path
- Databases pre-populated with players
- A ledger factory wired to the deterministic clock
"""

import pytest
from datetime import datetime, timedelta

from pokerdb import (
    Database, PersistenceStore, PokerDBSettings, SessionLedger, SettlementEngine,
)


class FakeClock:
    """Returns start, start + step, start + 2*step, ... on successive calls."""

    def __init__(self, start: datetime, step: timedelta):
        self.current = start
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        self.calls += 1
        return value


SESSION_START = datetime(2025, 1, 10, 19, 0, 0)


@pytest.fixture
def clock():
    """Session opens at 19:00:00 and finalizes 3.5 hours later."""
    return FakeClock(SESSION_START, timedelta(hours=3, minutes=30))


@pytest.fixture
def settings(tmp_path):
    return PokerDBSettings(data_dir=tmp_path / "pokerdb", max_settlement_attempts=3)


@pytest.fixture
def store(settings):
    return PersistenceStore(settings)


@pytest.fixture
def db():
    """Database with alice and bob registered."""
    database = Database()
    database.players.add("alice")
    database.players.add("bob")
    return database


@pytest.fixture
def make_ledger(db, clock):
    """Factory for ledgers over the shared database and clock."""
    def factory(max_attempts: int = 3, database: Database = None) -> SessionLedger:
        return SessionLedger(
            database if database is not None else db,
            engine=SettlementEngine(max_attempts=max_attempts),
            clock=clock,
        )
    return factory


@pytest.fixture
def ledger(make_ledger):
    return make_ledger()
