"""
Pytest configuration and shared fixtures.

The database and the upload directory live in a throwaway directory. The
environment is set before any guestbook import so the cached settings,
the engine and the upload store all pick it up.
"""

import os
import shutil
import tempfile

import pytest

_TEST_ROOT = tempfile.mkdtemp(prefix="guestbook-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_ROOT, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ.setdefault("LOG_LEVEL", "INFO")

# Clear settings cache before any app imports to ensure test env vars are used
from guestbook.config import get_settings
get_settings.cache_clear()

from fastapi.testclient import TestClient

import guestbook.models  # noqa: F401  (registers tables on Base.metadata)
from guestbook.main import app, upload_store
from guestbook.storage import Base, SessionLocal, engine
from guestbook.uploads import UploadStore


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database and empty upload dir for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)
    shutil.rmtree(upload_store.root, ignore_errors=True)


@pytest.fixture(scope="function")
def db():
    """Database session over freshly created tables."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(tmp_path) -> UploadStore:
    """Upload store rooted in a per-test temporary directory."""
    return UploadStore(str(tmp_path / "uploads"))


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)
