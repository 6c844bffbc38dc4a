"""API route for the public square: published generation results.

Uses /api/v1/square prefix.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agentsquare.api.schemas import SquareAgent, SquareItem, SquareResponse, SquareUser
from agentsquare.db.connection import get_db
from agentsquare.services.message_repository import (
    DEFAULT_PAGE_LIMIT,
    FeedEntry,
    MessageRepository,
)

router = APIRouter(prefix="/square", tags=["square"])


def _to_item(entry: FeedEntry) -> SquareItem:
    message, origin = entry.message, entry.request
    return SquareItem(
        id=message.id,
        content=origin.content if origin is not None else message.content,
        caption=message.content,
        image_data=message.image_data,
        reference_images=(
            origin.reference_images if origin is not None else message.reference_images
        ),
        generation_time=message.generation_time,
        timestamp=message.created_at,
        agent=SquareAgent(
            id=message.agent_id,
            name=message.agent.name if message.agent else "",
            avatar=message.agent.avatar if message.agent else None,
        ),
        user=SquareUser(
            id=message.user_id,
            nickname=message.user.nickname if message.user else "",
            avatar=message.user.avatar if message.user else None,
        ),
    )


@router.get("", response_model=SquareResponse)
def list_square(
    before: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT),
    db: Session = Depends(get_db),
) -> SquareResponse:
    """List published results, newest first."""
    page = MessageRepository(db).list_feed(cursor=before, limit=limit)
    return SquareResponse(
        items=[_to_item(entry) for entry in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )
