"""Test fixtures for the RPC façade and the blog post store."""

from __future__ import annotations

import os
from pathlib import Path

TESTS_ROOT = Path(__file__).parent
TEST_DB_PATH = TESTS_ROOT / "test_postdesk.db"

# Set DATABASE_URL *before* importing postdesk modules so the module-level app
# never points at the default data directory.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_PATH}")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from postdesk.config import Settings  # noqa: E402
from postdesk.database import Base, Database  # noqa: E402
from postdesk.main import create_app  # noqa: E402
from postdesk.services.post_store import PostStore  # noqa: E402

TEST_DATABASE: Database | None = None


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings(
        database_url=f"sqlite:///{TEST_DB_PATH}",
        environment="development",
        allowed_origins=["http://localhost:5173"],
    )


@pytest.fixture(scope="session")
def client(test_settings: Settings):
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    global TEST_DATABASE
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        TEST_DATABASE = test_client.app.state.database
        yield test_client
    TEST_DATABASE = None

    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture
def database(client: TestClient) -> Database:
    return client.app.state.database


@pytest.fixture(autouse=True)
def _clean_tables():
    """Empty every table after each test once the app is running."""
    yield
    if TEST_DATABASE is None:
        return
    with TEST_DATABASE.session_factory() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture
def db_session(database: Database):
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session: Session) -> PostStore:
    return PostStore(db_session)


@pytest.fixture
def post_payload() -> dict:
    return {
        "title": "Test Blog Post",
        "body": "This is a test blog post content with **markdown**.",
        "author": "Test Author",
        "publication_date": "2024-01-15",
        "tags": ["test", "blog"],
    }
