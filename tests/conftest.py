"""Shared pytest fixtures for mindmirror tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mindmirror.db.schema import Base, LocalBase
from mindmirror.db.session import dispose_database
from mindmirror.storage import LocalBlobStore


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine with both schemas."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    LocalBase.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    """Create a database session for testing."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def blob_db_path(tmp_path):
    """Blob database file; its cached engine is disposed after the test."""
    path = tmp_path / "mindmirror-videos.db"
    yield path
    dispose_database(path)


@pytest.fixture
def entries_db_path(tmp_path):
    """Entry database file; its cached engine is disposed after the test."""
    path = tmp_path / "mindmirror.db"
    yield path
    dispose_database(path)


@pytest.fixture
def blob_store(blob_db_path):
    """Blob store without retry delays."""
    return LocalBlobStore(blob_db_path, backoff_base=0)
