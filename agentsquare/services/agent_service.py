"""CRUD service for agent personas."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from agentsquare.db.models import Agent, utc_now_iso
from agentsquare.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Fields that can be set on create / update
_MUTABLE_FIELDS = {
    "name", "avatar", "description", "skills",
    "system_prompt", "policy_prompt",
    "min_content_length", "min_reference_images",
    "is_active",
}
_REQUIRED_TEXT_FIELDS = ("name", "system_prompt")
_COUNT_FIELDS = ("min_content_length", "min_reference_images")


def _validate(fields: dict[str, Any]) -> None:
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown agent fields: {sorted(unknown)}")
    for name in _REQUIRED_TEXT_FIELDS:
        if name in fields and not (isinstance(fields[name], str) and fields[name].strip()):
            raise ValidationError(f"{name} must not be empty")
    for name in _COUNT_FIELDS:
        if name in fields and (not isinstance(fields[name], int) or fields[name] < 0):
            raise ValidationError(f"{name} must be a non-negative integer")


class AgentService:
    """Create, read, update and delete agents."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def list(self, include_inactive: bool = False) -> list[Agent]:
        """Return agents in creation order, active only unless asked otherwise."""
        query = self._db.query(Agent)
        if not include_inactive:
            query = query.filter(Agent.is_active.is_(True))
        return query.order_by(Agent.created_at.asc()).all()

    def get(self, agent_id: str, include_inactive: bool = True) -> Agent:
        """Return one agent.

        Raises:
            NotFoundError: If no such agent exists (or it is inactive and
                include_inactive is False).
        """
        agent = self._db.get(Agent, agent_id)
        if agent is None or (not include_inactive and not agent.is_active):
            raise NotFoundError("Agent", agent_id)
        return agent

    def create(self, fields: dict[str, Any]) -> Agent:
        """Create an agent. name and system_prompt are required.

        Raises:
            ValidationError: On missing or invalid fields.
        """
        for name in _REQUIRED_TEXT_FIELDS:
            if name not in fields:
                raise ValidationError(f"{name} is required")
        _validate(fields)
        agent = Agent(**fields)
        self._db.add(agent)
        self._db.flush()
        logger.info("Created agent %s (%s)", agent.id, agent.name)
        return agent

    def update(self, agent_id: str, patch: dict[str, Any]) -> Agent:
        """Apply patch-style updates.

        Raises:
            NotFoundError: If the agent does not exist.
            ValidationError: On unknown or invalid fields.
        """
        _validate(patch)
        agent = self.get(agent_id)
        for key, value in patch.items():
            setattr(agent, key, value)
        agent.updated_at = utc_now_iso()
        self._db.flush()
        return agent

    def delete(self, agent_id: str) -> None:
        """Delete an agent and, by cascade, all of its messages.

        Raises:
            NotFoundError: If the agent does not exist.
        """
        agent = self.get(agent_id)
        self._db.delete(agent)
        self._db.flush()
        logger.info("Deleted agent %s", agent_id)
