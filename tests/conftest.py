"""
Pytest configuration and fixtures for the bulk import tests.

Every test runs against a private in-memory SQLite database swapped in for
the application engine, and against an in-memory fake of the object store,
so no PostgreSQL server or bucket is needed.
"""

import os

# The FastAPI lifespan must not try to reach the configured database.
os.environ.setdefault("SKIP_DB_INIT", "1")

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.pool import StaticPool

from bulk_import.db import session as db_session
from bulk_import.domain.imports.jobs import create_import_job
from tests.utils.seed_data import TEST_ORG_ID, TEST_USER_ID, seed_database


@pytest.fixture(autouse=True)
def engine(monkeypatch):
    """Point the application at a fresh in-memory database for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(db_session, "_engine", test_engine)
    seed_database(test_engine)

    yield test_engine
    test_engine.dispose()


class FakeStorage:
    """In-memory stand-in for the bulk-import bucket."""

    def __init__(self):
        self.files = {}
        self.deleted = []
        self.delete_error = None

    def download_file(self, file_path):
        from bulk_import.integrations.storage import StorageDownloadError

        if file_path not in self.files:
            raise StorageDownloadError(f"Failed to download file: file not found: {file_path}")
        return self.files[file_path]

    def delete_file(self, file_path):
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(file_path)
        self.files.pop(file_path, None)
        return True


@pytest.fixture
def fake_storage(monkeypatch):
    storage = FakeStorage()
    monkeypatch.setattr("bulk_import.integrations.storage.download_file", storage.download_file)
    monkeypatch.setattr("bulk_import.integrations.storage.delete_file", storage.delete_file)
    return storage


@pytest.fixture
def make_job(fake_storage):
    """Upload CSV text to the fake bucket and create a pending job for it."""

    def _make_job(csv_text, import_type="contacts", org_id=TEST_ORG_ID, target_id=None, file_name="upload.csv"):
        file_path = f"{org_id}/{file_name}"
        content = csv_text if isinstance(csv_text, bytes) else csv_text.encode("utf-8")
        fake_storage.files[file_path] = content
        return create_import_job(
            org_id=org_id,
            user_id=TEST_USER_ID,
            file_name=file_name,
            file_path=file_path,
            import_type=import_type,
            target_id=target_id,
        )

    return _make_job


@pytest.fixture
def fetch_all(engine):
    """Return every row of a table as a list of dicts."""

    def _fetch_all(model):
        with engine.connect() as conn:
            return [dict(row) for row in conn.execute(select(model.__table__)).mappings()]

    return _fetch_all
