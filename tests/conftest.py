"""Shared test fixtures for the wikigate test suite.

All tests use a private in-memory SQLite database. Each test gets fresh
tables via create_all / drop_all, ensuring complete isolation.

Auth is ENABLED for the suite: the interesting behaviour (anonymous
redirect vs. 403, role rules) only exists with real principals. Tests that
need the development bypass patch ``settings.auth_enabled``.
"""

import os

# Configure the app before any app imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_ENABLED"] = "true"
os.environ["ALLOW_ANONYMOUS_READING"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["LOG_FORMAT"] = "text"

import pytest
from fastapi.testclient import TestClient

from wikigate.core.config import settings
from wikigate.core.token_factory import create_token
from wikigate.database import Base, SessionLocal, engine, get_db
from wikigate.main import app
from wikigate.models import User


@pytest.fixture(autouse=True)
def _schema():
    """Create all tables before each test and drop them afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session.

    Redirects are not followed so tests can assert on the login redirect itself.
    """

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users and principals
# ---------------------------------------------------------------------------


def _add_user(db, user_id: str, is_admin: bool = False, is_editor: bool = False) -> User:
    # Rows are inserted directly; password hashing is exercised in test_auth.
    user = User(
        user_id=user_id,
        username=user_id,
        is_admin=is_admin,
        is_editor=is_admin or is_editor,
        is_active=True,
    )
    db.add(user)
    db.commit()
    return user


def _headers_for(user: User) -> dict:
    token = create_token(
        subject=user.user_id,
        roles=user.role_claims,
        secret=settings.jwt_secret_key,
        username=user.username,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(db) -> dict:
    return _headers_for(_add_user(db, "admin-1", is_admin=True))


@pytest.fixture()
def editor_headers(db) -> dict:
    return _headers_for(_add_user(db, "editor-1", is_editor=True))


@pytest.fixture()
def reader_headers(db) -> dict:
    """Authenticated user with no role."""
    return _headers_for(_add_user(db, "reader-1"))

