"""API routes for chatting with an agent.

POST opens a server-sent event stream driven by the generation
orchestrator; GET pages through the caller's history with one agent.
All endpoints use /api/v1/agents/{agent_id}/messages prefix.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from agentsquare.api.deps import get_orchestrator
from agentsquare.api.schemas import HistoryMessage, HistoryResponse, SubmitMessageRequest
from agentsquare.db.connection import get_db
from agentsquare.db.models import Message, SenderKind
from agentsquare.services.event_channel import EventChannel, to_sse
from agentsquare.services.generation_orchestrator import GenerationOrchestrator, SubmitRequest
from agentsquare.services.message_repository import DEFAULT_PAGE_LIMIT, MessageRepository
from agentsquare.services.user_service import UserService
from agentsquare.utils.network import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents/{agent_id}/messages", tags=["messages"])

# Pipelines outlive their stream; keep references so tasks are not collected.
_running: set[asyncio.Task] = set()


async def _event_generator(
    request: Request,
    channel: EventChannel,
) -> AsyncGenerator[dict, None]:
    """Generate SSE events from the orchestrator's channel.

    Args:
        request: FastAPI request for disconnect detection.
        channel: Channel the orchestrator writes to.

    Yields:
        SSE event dictionaries.
    """
    try:
        async for event in channel.events():
            if await request.is_disconnected():
                logger.info("Client disconnected, generation continues in background")
                break
            yield to_sse(event)
    finally:
        channel.close()


def _to_history_message(message: Message) -> HistoryMessage:
    if message.resolved_sender_kind() is SenderKind.agent:
        sender = SenderKind.agent.value
        sender_name = message.agent.name if message.agent else ""
        sender_avatar = message.agent.avatar if message.agent else None
    else:
        sender = SenderKind.user.value
        sender_name = message.user.nickname if message.user else ""
        sender_avatar = message.user.avatar if message.user else None
    return HistoryMessage(
        id=message.id,
        content=message.content,
        image_data=message.image_data,
        reference_images=message.reference_images,
        type=message.type,
        sender=sender,
        sender_name=sender_name,
        sender_avatar=sender_avatar,
        generation_time=message.generation_time,
        timestamp=message.created_at,
    )


@router.post("")
async def send_message(
    agent_id: str,
    payload: SubmitMessageRequest,
    request: Request,
    db: Session = Depends(get_db),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> EventSourceResponse:
    """Submit a chat message and stream the generation progress.

    Validation failures are returned as a plain error response before the
    stream opens.

    Raises:
        AgentSquareError: VALIDATION_ERROR, CONTENT_BLOCKED, NOT_FOUND,
            CONTENT_TOO_SHORT or REFERENCE_IMAGE_REQUIRED.
    """
    prepared = await orchestrator.prepare(
        db,
        SubmitRequest(
            agent_id=agent_id,
            content=payload.content,
            client_ip=get_client_ip(request),
            reference_images=payload.reference_images,
            publish_to_square=payload.publish_to_square,
        ),
    )

    channel = EventChannel()
    task = asyncio.create_task(orchestrator.run(prepared, channel))
    _running.add(task)
    task.add_done_callback(_running.discard)

    return EventSourceResponse(
        _event_generator(request, channel),
        media_type="text/event-stream",
    )


@router.get("", response_model=HistoryResponse)
def get_history(
    agent_id: str,
    request: Request,
    before: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT),
    db: Session = Depends(get_db),
) -> HistoryResponse:
    """Page backwards through the caller's conversation with an agent."""
    user = UserService(db).find_by_ip(get_client_ip(request))
    if user is None:
        return HistoryResponse(messages=[], has_more=False, next_cursor=None)

    page = MessageRepository(db).list(agent_id, user.id, cursor=before, limit=limit)
    return HistoryResponse(
        messages=[_to_history_message(m) for m in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )
