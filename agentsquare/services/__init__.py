"""Service layer for AgentSquare.

Provides the generation orchestrator, its policy, prompt and adapter
collaborators, and the persistence services behind the API routes.
"""

from agentsquare.services.agent_service import AgentService
from agentsquare.services.config_resolver import ConfigurationResolver, ServiceConfig
from agentsquare.services.errors import ExternalServiceError
from agentsquare.services.event_channel import EventChannel
from agentsquare.services.generation_orchestrator import (
    GenerationOrchestrator,
    PreparedGeneration,
    SubmitRequest,
)
from agentsquare.services.message_repository import MessageRepository
from agentsquare.services.settings_service import SettingsService
from agentsquare.services.user_service import UserService

__all__ = [
    "AgentService",
    "ConfigurationResolver",
    "ServiceConfig",
    "ExternalServiceError",
    "EventChannel",
    "GenerationOrchestrator",
    "PreparedGeneration",
    "SubmitRequest",
    "MessageRepository",
    "SettingsService",
    "UserService",
]
