"""
Pytest fixtures for testing
"""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from goalify.application.ports import UserIdentity
from goalify.application.task_state import TaskStateManager
from goalify.config import Settings
from goalify.infrastructure.db.session import Base
import goalify.infrastructure.db.models  # noqa: F401

from fakes import InMemoryTaskStore, FakeAuthProvider, FixedClock


@pytest.fixture
def db_engine():
    """
    In-memory SQLite engine for tests.

    One shared connection (StaticPool) so that worker threads used by
    SqlTaskStore see the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def sample_account_id():
    """Sample account ID for tests"""
    return 1


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        TIMEZONE="Europe/Rome",
        HISTORY_WINDOW_DAYS=30,
        REMOTE_TIMEOUT_SECONDS=0.5,
    )


@pytest.fixture
def clock():
    """Fixed 'now': 2024-01-15 09:30 in Rome"""
    return FixedClock(datetime(2024, 1, 15, 9, 30, tzinfo=ZoneInfo("Europe/Rome")))


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def auth(sample_account_id):
    return FakeAuthProvider(UserIdentity(id=sample_account_id, email="test@example.com"))


@pytest.fixture
def manager(store, auth, settings, clock):
    return TaskStateManager(store, auth, settings=settings, clock=clock)
