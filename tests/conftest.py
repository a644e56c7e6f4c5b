"""
- Spins up temp test DB
- Create tables before tests run
- Provide a db_session fixture and override FastAPI's get_db so routes use the test session.
- Provide a client fixture (TestClient(app)) that already has the DB override applied.
- Provide helpers to control randomness and time.
"""
import os
import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the app does NOT run dev-only startup hooks (e.g., auto-create tables against real DB)
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("RANDOM_SOURCE", "local")

from digitbingo.db import Base, get_db
from digitbingo.main import app, registry
from digitbingo import models  # noqa: F401
from digitbingo import random_client

# Use SQLite in-memory for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"


class FakeTime:
    """Stand-in for time.monotonic; tests move it forward by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class ScriptedDigits:
    """Digit source that replays a fixed string, then starts over."""

    def __init__(self, digits: str) -> None:
        self.digits = digits
        self.i = 0

    def draw(self) -> str:
        d = self.digits[self.i % len(self.digits)]
        self.i += 1
        return d

    __call__ = draw


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def scripted_secret(monkeypatch):
    """Every generated secret comes from the given digits: scripted_secret("1234")."""
    def _install(digits: str) -> ScriptedDigits:
        source = ScriptedDigits(digits)
        monkeypatch.setattr(random_client, "_default_source", source)
        return source
    return _install


@pytest.fixture(scope="session")
def engine():
    # StaticPool + check_same_thread=False lets Starlette's TestClient and SQLAlchemy
    # share ONE in-memory SQLite database across threads.
    engine = create_engine(
        TEST_DATABASE_URL,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(engine) -> Generator:
    """Provide a clean session per test with rollback."""
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()

@pytest.fixture(autouse=True)
def _clean_db(engine):
    """The key-value store commits inside requests; wipe it before each test."""
    with engine.begin() as conn:
        conn.execute(text("DELETE FROM kv_items"))
    yield

@pytest.fixture(autouse=True)
def _clean_rounds():
    registry.clear()
    yield
    registry.clear()

@pytest.fixture(autouse=True)
def override_dep(db_session):
    """Force the app to use our test session for every request."""
    def _get_db_for_tests():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_for_tests
    yield
    app.dependency_overrides.clear()

@pytest.fixture
def client():
    return TestClient(app)
