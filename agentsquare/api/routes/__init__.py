"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from agentsquare.api.routes import admin, agents, messages, settings, speech, square, users

__all__ = [
    "admin",
    "agents",
    "messages",
    "settings",
    "speech",
    "square",
    "users",
]
