"""Test configuration and fixtures for the Library Lending server.

1. Isolated test databases - Each test gets a clean SQLite file
2. Configuration overrides - Test-specific settings, reset after each test
3. A controllable clock - Late fees and due dates depend on "now"
4. Sample users and books matching the library's demo catalog
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from library_lending.config import ServerConfig, reset_config
from library_lending.database.book_repository import BookCreateSchema, BookRepository
from library_lending.database.schema import Base
from library_lending.database.session import reset_db_manager
from library_lending.database.user_repository import UserCreateSchema, UserRepository
from library_lending.lending import LendingEngine

# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for each test."""
    return tmp_path / "test_library.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    """Provide a SQLAlchemy database URL for testing."""
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def test_db_session(test_database_url: str) -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session bound to a freshly created schema."""
    engine = create_engine(
        test_database_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = session_local()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# === Clock Fixtures ===


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 10, 0, 0))


@pytest.fixture
def engine(test_db_session: Session, clock: FakeClock) -> LendingEngine:
    """Lending engine running against the test session and the fake clock."""
    return LendingEngine(test_db_session, clock=clock)


# === Sample Data Fixtures ===


@pytest.fixture
def sample_user(test_db_session):
    """A user with no outstanding fees."""
    user = UserRepository(test_db_session).create(
        UserCreateSchema(name="Doe", first_name="John", fees=Decimal("0.00"))
    )
    test_db_session.commit()
    return user


@pytest.fixture
def indebted_user(test_db_session):
    """A user who already owes 5.00."""
    user = UserRepository(test_db_session).create(
        UserCreateSchema(name="Smith", first_name="Jane", fees=Decimal("5.00"))
    )
    test_db_session.commit()
    return user


@pytest.fixture
def sample_book(test_db_session):
    """A 14-day book charging 2.50 per overdue day."""
    book = BookRepository(test_db_session).create(
        BookCreateSchema(
            id="a",
            title="Introduction to C#",
            fee_price=Decimal("2.50"),
            borrowing_days=14,
        )
    )
    test_db_session.commit()
    return book


@pytest.fixture
def second_book(test_db_session):
    """A 7-day book charging 1.00 per overdue day."""
    book = BookRepository(test_db_session).create(
        BookCreateSchema(
            id="b",
            title="ASP.NET Core in Action",
            fee_price=Decimal("1.00"),
            borrowing_days=7,
        )
    )
    test_db_session.commit()
    return book


# === Request Layer Fixtures ===


@pytest.fixture
def mock_get_session(test_db_session, monkeypatch):
    """Route the tool handlers' get_session to the test session."""

    @contextmanager
    def _mock_get_session():
        yield test_db_session

    monkeypatch.setattr("library_lending.tools.lending.get_session", _mock_get_session)
    return test_db_session


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[ServerConfig, None, None]:
    """Provide a test-specific server configuration."""
    reset_config()

    config = ServerConfig(
        server_name="test-library-lending",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_LENDING_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_LENDING_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Cleanup Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Reset global singletons so tests don't interfere with each other."""
    yield

    reset_config()
    reset_db_manager()
