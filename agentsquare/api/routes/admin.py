"""API routes for the admin console.

Login/verify for bearer tokens, moderation of chat turns and AI-assisted
agent copy polishing. All endpoints use /api/v1/admin prefix.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from agentsquare.api.deps import get_polisher, get_resolver
from agentsquare.api.middleware.auth import (
    is_login_rate_limited,
    record_login_failure,
    require_admin,
)
from agentsquare.api.schemas import (
    AdminMessage,
    AdminMessageListResponse,
    LoginRequest,
    LoginResponse,
    PolishRequest,
    PolishResponse,
    VerifyResponse,
)
from agentsquare.db.connection import get_db
from agentsquare.db.models import Message
from agentsquare.errors import AgentSquareError
from agentsquare.services.admin_auth import issue_token
from agentsquare.services.agent_polish import AgentCopy, AgentPolisher
from agentsquare.services.config_resolver import ConfigurationResolver
from agentsquare.services.errors import ExternalServiceError
from agentsquare.services.message_repository import MessageRepository
from agentsquare.services.settings_service import SettingsService
from agentsquare.utils.network import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> LoginResponse:
    """Exchange the admin password for a bearer token.

    Raises:
        AgentSquareError: UNAUTHORIZED on a wrong password or when the
            client is rate limited.
    """
    client_ip = get_client_ip(request)
    if is_login_rate_limited(client_ip):
        logger.warning("Admin login rate limited for %s", client_ip)
        raise AgentSquareError.from_code(
            "UNAUTHORIZED", reason="Too many failed login attempts. Try again later."
        )
    if not SettingsService(db).verify_admin_password(data.password):
        record_login_failure(client_ip)
        logger.info("Failed admin login from %s", client_ip)
        raise AgentSquareError.from_code("UNAUTHORIZED", reason="Incorrect password.")

    token, expires_at = issue_token()
    logger.info("Admin login from %s", client_ip)
    return LoginResponse(token=token, expires_at=expires_at)


@router.get("/verify", response_model=VerifyResponse, dependencies=[Depends(require_admin)])
def verify() -> VerifyResponse:
    """Confirm the caller's admin token is still valid."""
    return VerifyResponse(valid=True)


def _to_admin_message(message: Message) -> AdminMessage:
    return AdminMessage(
        id=message.id,
        content=message.content,
        image_data=message.image_data,
        reference_images=message.reference_images,
        type=message.type,
        sender=message.resolved_sender_kind().value,
        agent_id=message.agent_id,
        agent_name=message.agent.name if message.agent else None,
        user_id=message.user_id,
        user_nickname=message.user.nickname if message.user else None,
        user_ip=message.user.ip if message.user else None,
        generation_time=message.generation_time,
        is_published_to_square=message.is_published_to_square,
        timestamp=message.created_at,
    )


@router.get(
    "/messages",
    response_model=AdminMessageListResponse,
    dependencies=[Depends(require_admin)],
)
def list_messages(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, alias="pageSize"),
    agent_id: str | None = Query(default=None, alias="agentId"),
    keyword: str | None = Query(default=None),
    message_type: str | None = Query(default=None, alias="type"),
    order: str = Query(default="desc"),
    db: Session = Depends(get_db),
) -> AdminMessageListResponse:
    """List chat turns across all conversations."""
    result = MessageRepository(db).list_admin(
        page=page,
        page_size=page_size,
        agent_id=agent_id,
        keyword=keyword,
        message_type=message_type,
        descending=order.lower() != "asc",
    )
    return AdminMessageListResponse(
        items=[_to_admin_message(m) for m in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.delete(
    "/messages/{message_id}",
    status_code=204,
    dependencies=[Depends(require_admin)],
)
def delete_message(message_id: str, db: Session = Depends(get_db)) -> Response:
    """Delete one chat turn."""
    if not MessageRepository(db).delete(message_id):
        raise AgentSquareError.from_code("NOT_FOUND", resource="Message")
    db.commit()
    return Response(status_code=204)


@router.post(
    "/agents/polish",
    response_model=PolishResponse,
    dependencies=[Depends(require_admin)],
)
async def polish_agent(
    data: PolishRequest,
    resolver: ConfigurationResolver = Depends(get_resolver),
    polisher: AgentPolisher = Depends(get_polisher),
) -> PolishResponse:
    """Rewrite an agent's public copy with the moderation model.

    Raises:
        AgentSquareError: VALIDATION_ERROR, CONFIG_MISSING, AI_SERVICE_ERROR,
            TIMEOUT or PARSE_ERROR.
    """
    if not data.system_prompt.strip():
        raise AgentSquareError.from_code(
            "VALIDATION_ERROR", reason="A system prompt is required to polish an agent."
        )
    current = AgentCopy(
        name=data.name.strip(),
        description=data.description.strip(),
        skills=data.skills.strip(),
        policy_prompt=data.policy_prompt.strip(),
    )
    try:
        polished = await polisher.polish(
            resolver.moderation(),
            data.system_prompt.strip(),
            current,
            resolver.timeouts().auxiliary,
        )
    except ExternalServiceError as e:
        raise e.to_app_error() from e
    return PolishResponse(
        name=polished.name,
        description=polished.description,
        skills=polished.skills,
        policy_prompt=polished.policy_prompt,
    )
