"""Pytest fixtures for API tests.

Provides a TestClient wired to the in-memory database and an admin
bearer token.
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from agentsquare.api.main import app
from agentsquare.api.middleware.auth import reset_rate_limiter
from agentsquare.db.connection import get_db, get_session_factory
from agentsquare.services.admin_auth import issue_token


@pytest.fixture(autouse=True)
def _reset_login_limiter() -> Generator[None, None, None]:
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def client(test_db: Session, session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    """Create a TestClient with overridden database dependencies.

    Args:
        test_db: Test database session fixture.
        session_factory: Factory bound to the same database.

    Yields:
        TestClient configured for testing.
    """

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Authorization header carrying a valid admin token."""
    token, _ = issue_token()
    return {"Authorization": f"Bearer {token}"}
