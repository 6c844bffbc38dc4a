"""API routes for agent personas.

Public callers see active agents without their prompts; admins see and
manage full records. All endpoints use /api/v1/agents prefix.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from agentsquare.api.middleware.auth import is_admin, require_admin
from agentsquare.api.schemas import AgentAdmin, AgentCreate, AgentPublic, AgentUpdate
from agentsquare.db.connection import get_db
from agentsquare.services.agent_service import AgentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


def _get_service(db: Session = Depends(get_db)) -> AgentService:
    """Dependency injector for AgentService."""
    return AgentService(db)


@router.get("", response_model=list[AgentPublic])
def list_agents(service: AgentService = Depends(_get_service)) -> list[AgentPublic]:
    """List active agents in creation order, prompts stripped."""
    return [AgentPublic.model_validate(agent) for agent in service.list()]


@router.get("/{agent_id}", response_model=AgentAdmin | AgentPublic)
def get_agent(
    agent_id: str,
    admin: bool = Depends(is_admin),
    service: AgentService = Depends(_get_service),
) -> AgentAdmin | AgentPublic:
    """Get one agent. Admins receive the full record, including inactive agents."""
    agent = service.get(agent_id, include_inactive=admin)
    if admin:
        return AgentAdmin.model_validate(agent)
    return AgentPublic.model_validate(agent)


@router.post(
    "",
    response_model=AgentAdmin,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def create_agent(
    data: AgentCreate,
    service: AgentService = Depends(_get_service),
    db: Session = Depends(get_db),
) -> AgentAdmin:
    """Create an agent."""
    agent = service.create(data.model_dump())
    db.commit()
    db.refresh(agent)
    return AgentAdmin.model_validate(agent)


@router.put("/{agent_id}", response_model=AgentAdmin, dependencies=[Depends(require_admin)])
def update_agent(
    agent_id: str,
    data: AgentUpdate,
    service: AgentService = Depends(_get_service),
    db: Session = Depends(get_db),
) -> AgentAdmin:
    """Update an agent (fields left out or null are unchanged)."""
    agent = service.update(agent_id, data.model_dump(exclude_none=True))
    db.commit()
    db.refresh(agent)
    return AgentAdmin.model_validate(agent)


@router.delete("/{agent_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_agent(
    agent_id: str,
    service: AgentService = Depends(_get_service),
    db: Session = Depends(get_db),
) -> Response:
    """Delete an agent and all of its messages."""
    service.delete(agent_id)
    db.commit()
    return Response(status_code=204)
