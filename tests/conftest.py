"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from greenlight.core.approval import GreenlightEngine, GreenlightService
from greenlight.db.base import Base
from greenlight.db.session import enable_sqlite_savepoints
import greenlight.db.models  # noqa: F401

from tests.fakes import FrozenClock, InMemoryAuditSink, InMemoryProjectStore


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def engine(clock):
    return GreenlightEngine(clock=clock)


@pytest.fixture
def store():
    return InMemoryProjectStore()


@pytest.fixture
def sink():
    return InMemoryAuditSink()


@pytest.fixture
def service(store, sink, engine):
    return GreenlightService(store, sink, engine, max_conflict_retries=3)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def db_engine():
    """In-memory SQLite database shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(session_factory, db_engine, monkeypatch):
    """API client whose requests use the in-memory database."""
    monkeypatch.setattr("greenlight.db.session.engine", db_engine)
    from greenlight.api.deps import get_db
    from greenlight.api.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
