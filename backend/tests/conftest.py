"""
Test configuration and shared fixtures for the Shop Planner test suite.

Runs against an in-memory SQLite database by default (set TEST_DATABASE_URL
to use PostgreSQL). Every test gets freshly created tables.
"""

import os

# Must be set before core.database creates its engine
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ORG_TIMEZONE"] = "Europe/Vilnius"

import pytest
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from core.database import Base, SessionLocal, engine

# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
import models  # noqa: F401


TEST_ORG_ID = "org-test"
OTHER_ORG_ID = "org-other"


@pytest.fixture(scope="session")
def db_engine():
    """The application engine, bound to the test database."""
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def setup_test_database(db_engine) -> Generator[None, None, None]:
    """Create all tables before each test and drop them afterwards."""
    Base.metadata.create_all(bind=db_engine)
    yield
    Base.metadata.drop_all(bind=db_engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    """Session factory handed to the in-process planner backend."""
    return SessionLocal


@pytest.fixture
def org_id() -> str:
    return TEST_ORG_ID


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """API client; requests carry no organization header unless the test adds one."""
    from main import app

    # Not entered as a context manager: the lifespan would dispose the shared engine
    yield TestClient(app)


@pytest.fixture
def org_headers() -> dict:
    return {"X-Organization-Id": TEST_ORG_ID}
