"""Shared FastAPI dependencies for services that talk to external endpoints.

Tests override these through ``app.dependency_overrides`` to inject
adapters backed by ``httpx.MockTransport``.
"""

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from agentsquare.db.connection import get_session_factory
from agentsquare.services.agent_polish import AgentPolisher
from agentsquare.services.config_resolver import ConfigurationResolver
from agentsquare.services.generation_orchestrator import GenerationOrchestrator
from agentsquare.services.geolocation import GeolocationAdapter
from agentsquare.services.speech_adapter import SpeechAdapter


def get_resolver(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> ConfigurationResolver:
    """Dependency injector for ConfigurationResolver."""
    return ConfigurationResolver(session_factory)


def get_orchestrator(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> GenerationOrchestrator:
    """Dependency injector for GenerationOrchestrator."""
    return GenerationOrchestrator(session_factory)


def get_geolocator() -> GeolocationAdapter:
    return GeolocationAdapter()


def get_speech_adapter() -> SpeechAdapter:
    return SpeechAdapter()


def get_polisher() -> AgentPolisher:
    return AgentPolisher()
