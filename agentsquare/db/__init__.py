"""Database module for AgentSquare persistence."""

from agentsquare.db.connection import (
    SessionLocal,
    engine,
    get_db,
    get_db_context,
    get_session_factory,
    init_db,
)
from agentsquare.db.models import (
    SETTINGS_SINGLETON_ID,
    Agent,
    Base,
    Message,
    MessageType,
    SenderKind,
    Settings,
    User,
)

__all__ = [
    # Models
    "Base",
    "Agent",
    "User",
    "Message",
    "Settings",
    # Enums
    "MessageType",
    "SenderKind",
    "SETTINGS_SINGLETON_ID",
    # Connection
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "get_session_factory",
    "init_db",
]
