# backend/tests/conftest.py
"""
Shared pytest fixtures.

Every test gets its own SQLite file database so services can commit and
roll back for real, and two sessions can race on the same rows.
"""

import os

# Set before any drivebook import so Settings picks them up
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("GATEWAY_BASE_URL", "http://gateway.test")
os.environ.setdefault("FRONTEND_BASE_URL", "http://frontend.test")

from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import drivebook.models  # noqa: F401
from drivebook.database import Base, enable_sqlite_savepoints

from tests.factories.gateway import FakeGateway


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'drivebook_test.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _no_redis():
    """The settlement lock degrades to "acquired" without Redis."""
    with patch("drivebook.core.settlement_lock._get_sync_redis", return_value=None):
        yield


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
