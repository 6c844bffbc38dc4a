"""Message history repository: chat turns, history pages and the square feed.

Message ids are time-sortable, so keyset pagination uses ``id < cursor``
with descending id order and needs no timestamp comparisons.
"""

import logging
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased, joinedload

from agentsquare.db.models import (
    Message,
    MessageType,
    SenderKind,
    encode_string_list,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100
ADMIN_MAX_PAGE_SIZE = 50

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One keyset page."""

    items: list[T]
    has_more: bool
    next_cursor: str | None


@dataclass
class FeedEntry:
    """A published agent turn with its originating request."""

    message: Message
    request: Message | None


@dataclass
class AdminPage:
    """One offset page for the admin message list."""

    items: list[Message] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20


def clamp_limit(limit: int | None, default: int = DEFAULT_PAGE_LIMIT, maximum: int = MAX_PAGE_LIMIT) -> int:
    """Bound a client-supplied page size to [1, maximum]."""
    if limit is None or limit < 1:
        return default
    return min(limit, maximum)


class MessageRepository:
    """Stores and retrieves chat turns.

    Write methods flush but do not commit; callers own the transaction.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(self, turn: Message) -> Message:
        """Insert a turn and flush so its id and timestamp are populated."""
        self._db.add(turn)
        self._db.flush()
        return turn

    def append_user_turn(
        self,
        *,
        user_id: str,
        agent_id: str,
        content: str,
        reference_images: list[str],
        publish_to_square: bool,
    ) -> Message:
        """Insert the user's request turn."""
        return self.append(
            Message(
                content=content,
                reference_images_json=encode_string_list(reference_images),
                type=(MessageType.image if reference_images else MessageType.text).value,
                sender_kind=SenderKind.user.value,
                user_id=user_id,
                agent_id=agent_id,
                is_published_to_square=publish_to_square,
            )
        )

    def append_agent_turn(
        self,
        *,
        user_id: str,
        agent_id: str,
        content: str,
        image_data: str | None,
        generation_time: int,
        user_message_id: str | None,
        publish_to_square: bool,
        reference_images: list[str] | None = None,
    ) -> Message:
        """Insert an agent turn (a result, or a failure notice without image)."""
        return self.append(
            Message(
                content=content,
                image_data=image_data,
                reference_images_json=encode_string_list(reference_images),
                type=(MessageType.image if image_data else MessageType.text).value,
                sender_kind=SenderKind.agent.value,
                user_id=user_id,
                agent_id=agent_id,
                user_message_id=user_message_id,
                generation_time=generation_time,
                is_published_to_square=publish_to_square,
            )
        )

    def list(
        self,
        agent_id: str,
        user_id: str,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> Page[Message]:
        """Return one history page in ascending time order.

        Args:
            agent_id: Conversation agent.
            user_id: Conversation participant.
            cursor: Only turns with id strictly below this are returned.
            limit: Page size (default 50, capped at 100).

        Returns:
            Page whose next_cursor is the oldest returned id when more exist.
        """
        limit = clamp_limit(limit)
        stmt = (
            select(Message)
            .options(joinedload(Message.agent), joinedload(Message.user))
            .where(Message.agent_id == agent_id, Message.user_id == user_id)
        )
        if cursor:
            stmt = stmt.where(Message.id < cursor)
        stmt = stmt.order_by(Message.id.desc()).limit(limit + 1)

        rows = list(self._db.scalars(stmt).unique())
        has_more = len(rows) > limit
        rows = rows[:limit]
        next_cursor = rows[-1].id if has_more and rows else None
        rows.reverse()
        return Page(items=rows, has_more=has_more, next_cursor=next_cursor)

    def list_feed(self, cursor: str | None = None, limit: int | None = None) -> Page[FeedEntry]:
        """Return published, completed, image-bearing agent turns, newest first.

        A turn qualifies only if it is flagged for the square and has both a
        non-empty image and a recorded generation time. Each entry carries
        the originating user turn when it still exists.
        """
        limit = clamp_limit(limit)
        request = aliased(Message)
        stmt = (
            select(Message, request)
            .outerjoin(request, Message.user_message_id == request.id)
            .options(joinedload(Message.agent), joinedload(Message.user))
            .where(
                Message.is_published_to_square.is_(True),
                Message.image_data.is_not(None),
                Message.image_data != "",
                Message.generation_time.is_not(None),
                or_(Message.sender_kind.is_(None), Message.sender_kind == SenderKind.agent.value),
            )
        )
        if cursor:
            stmt = stmt.where(Message.id < cursor)
        stmt = stmt.order_by(Message.id.desc()).limit(limit + 1)

        rows = [FeedEntry(message=m, request=r) for m, r in self._db.execute(stmt).unique()]
        has_more = len(rows) > limit
        rows = rows[:limit]
        next_cursor = rows[-1].message.id if has_more and rows else None
        return Page(items=rows, has_more=has_more, next_cursor=next_cursor)

    def list_admin(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        agent_id: str | None = None,
        keyword: str | None = None,
        message_type: str | None = None,
        descending: bool = True,
    ) -> AdminPage:
        """Offset-paginated listing across all conversations for moderators."""
        page = max(page, 1)
        page_size = clamp_limit(page_size, default=20, maximum=ADMIN_MAX_PAGE_SIZE)

        query = self._db.query(Message)
        if agent_id:
            query = query.filter(Message.agent_id == agent_id)
        if keyword:
            query = query.filter(Message.content.contains(keyword))
        if message_type:
            query = query.filter(Message.type == message_type)

        total = query.count()
        order = Message.id.desc() if descending else Message.id.asc()
        items = (
            query.options(joinedload(Message.agent), joinedload(Message.user))
            .order_by(order)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return AdminPage(items=items, total=total, page=page, page_size=page_size)

    def delete(self, message_id: str) -> bool:
        """Delete one turn. Returns False if it did not exist."""
        message = self._db.get(Message, message_id)
        if message is None:
            return False
        self._db.delete(message)
        self._db.flush()
        logger.info("Deleted message %s", message_id)
        return True
