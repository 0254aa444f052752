"""
Shared Test Fixtures

In-memory SQLite database, session factory and a fixed clock. Schedules are
built at D0 unless a test says otherwise.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from revision_engine.database import init_db
from revision_engine.scheduler import IntervalScheduler

D0 = datetime(2026, 3, 2, 9, 0, 0)


def days(n: float) -> timedelta:
    return timedelta(days=n)


@pytest.fixture
def engine():
    """Single shared in-memory connection so every session sees the same data."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def now() -> datetime:
    return D0


@pytest.fixture
def scheduler() -> IntervalScheduler:
    return IntervalScheduler()


@pytest.fixture
def easy_schedule(scheduler, now):
    """Unsaved easy schedule created at D0."""
    return scheduler.build_schedule("alice", "two-sum", "easy", now)


@pytest.fixture
def hard_schedule(scheduler, now):
    """Unsaved hard schedule created at D0."""
    return scheduler.build_schedule("alice", "lru-cache", "hard", now)
