"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- In-memory SQLite database, session and session factory
- Agent / user / settings factories
"""

import os

# Must be set before agentsquare.db.connection is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AGENTSQUARE_ADMIN_SECRET"] = "test-admin-secret"

from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from agentsquare.db.models import Agent, Base, Settings, User

# Service configuration read from the environment by ConfigurationResolver
_SERVICE_ENV_VARS = (
    "IMAGE_API_URL", "IMAGE_API_KEY", "IMAGE_MODEL",
    "MODERATION_API_URL", "MODERATION_API_KEY", "MODERATION_MODEL",
    "SPEECH_API_URL", "SPEECH_API_KEY", "SPEECH_MODEL",
    "IMAGEBED_URL", "IMAGEBED_TOKEN",
    "AGENTSQUARE_MODERATION_FAIL_MODE",
    "AGENTSQUARE_GENERATION_TIMEOUT", "AGENTSQUARE_AUX_TIMEOUT",
    "AGENTSQUARE_HOSTING_TIMEOUT", "AGENTSQUARE_GEO_TIMEOUT",
    "AGENTSQUARE_SPEECH_TIMEOUT", "AGENTSQUARE_TRUST_PROXY",
    "AGENTSQUARE_GEOLOCATION_URL",
)


@pytest.fixture(autouse=True)
def _clean_service_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment configuration out of tests."""
    for name in _SERVICE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def session_factory() -> sessionmaker:
    """Session factory bound to a fresh in-memory database.

    StaticPool shares one connection, so every session sees the same data.
    Commit test setup before handing the factory to code that opens its
    own sessions.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def test_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session on the in-memory database."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_agent(test_db: Session) -> Callable[..., Agent]:
    """Factory for committed agents."""

    def _make(**overrides: Any) -> Agent:
        fields = {
            "name": "Poster Artist",
            "avatar": "🎨",
            "description": "Makes posters",
            "system_prompt": "You design bold posters.",
        }
        fields.update(overrides)
        agent = Agent(**fields)
        test_db.add(agent)
        test_db.commit()
        test_db.refresh(agent)
        return agent

    return _make


@pytest.fixture
def make_user(test_db: Session) -> Callable[..., User]:
    """Factory for committed users."""

    def _make(ip: str = "10.0.0.1", nickname: str = "Local user") -> User:
        user = User(ip=ip, nickname=nickname, avatar="👤")
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make


@pytest.fixture
def configure_services(test_db: Session) -> Callable[..., Settings]:
    """Store service endpoints in the settings singleton."""

    def _configure(**overrides: Any) -> Settings:
        fields = {
            "image_api_url": "https://image.test/v1/chat/completions",
            "image_api_key": "sk-image-test-key",
            "image_model": "image-model",
            "moderation_api_url": "https://moderation.test/v1/chat/completions",
            "moderation_api_key": "sk-moderation-key",
            "moderation_model": "moderation-model",
        }
        fields.update(overrides)
        settings = test_db.get(Settings, "global")
        if settings is None:
            settings = Settings(id="global")
            test_db.add(settings)
        for key, value in fields.items():
            setattr(settings, key, value)
        test_db.commit()
        return settings

    return _configure
