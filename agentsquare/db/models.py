"""SQLAlchemy ORM models for the AgentSquare database.

This module defines agents (personas), chat participants, chat turns and
the global settings singleton. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

import json
import os
import threading
import time
from datetime import UTC, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


_id_lock = threading.Lock()
_last_id_ms = 0
_id_seq = 0


def generate_sortable_id() -> str:
    """Generate a lexicographically time-ordered id for chat turns.

    Layout: 12 hex chars of epoch milliseconds, 4 hex chars of per-millisecond
    sequence, 8 hex chars of randomness. Ids generated by this process are
    strictly increasing even if the wall clock steps backwards.
    """
    global _last_id_ms, _id_seq
    with _id_lock:
        now_ms = int(time.time() * 1000)
        if now_ms > _last_id_ms:
            _last_id_ms = now_ms
            _id_seq = 0
        else:
            _id_seq += 1
            if _id_seq > 0xFFFF:
                _last_id_ms += 1
                _id_seq = 0
        return f"{_last_id_ms:012x}{_id_seq:04x}{os.urandom(4).hex()}"


class MessageType(str, Enum):
    """Display type of a chat turn."""

    text = "text"
    image = "image"


class SenderKind(str, Enum):
    """Author of a chat turn.

    Rows written before this column existed carry NULL and are classified
    by :meth:`Message.resolved_sender_kind`.
    """

    user = "user"
    agent = "agent"


SETTINGS_SINGLETON_ID = "global"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Agent(Base):
    """A configured persona that users chat with.

    Attributes:
        id: UUID primary key.
        name: Display name.
        avatar: Avatar URL or emoji.
        description: Short public description.
        skills: Free-text skills summary shown on the profile.
        system_prompt: Persona instructions sent to the generation model.
            Never exposed to non-admin callers.
        policy_prompt: Optional soft constraints fed into moderation.
        min_content_length: Minimum trimmed text length (0 disables).
        min_reference_images: Minimum reference images when any are sent.
        is_active: Whether the agent appears in public listings.
        created_at: ISO8601 creation timestamp.
        updated_at: ISO8601 last-update timestamp.
    """

    __tablename__ = "agents"
    __table_args__ = (Index("ix_agents_active_created", "is_active", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[str | None] = mapped_column(Text, nullable=True)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    policy_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_content_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_reference_images: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)
    updated_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="agent",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Agent(id={self.id!r}, name={self.name!r})>"


class User(Base):
    """A chat participant, identified by client network address.

    Attributes:
        id: UUID primary key.
        ip: Client network address (unique identity key).
        nickname: Display name derived once from geolocation.
        avatar: Avatar URL or emoji.
        created_at: ISO8601 creation timestamp.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    ip: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    messages: Mapped[list["Message"]] = relationship("Message", back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, nickname={self.nickname!r})>"


class Message(Base):
    """One chat turn, authored by the user or by the agent.

    Attributes:
        id: Sortable id (see generate_sortable_id); id order is time order.
        content: Text of the turn (user request, caption, or failure notice).
        image_data: Generated image reference (URL or data URI), agent turns only.
        reference_images_json: JSON array of user-supplied image references.
        type: 'text' or 'image'.
        sender_kind: 'user' or 'agent'; NULL for legacy rows.
        user_id: FK to the participant whose conversation this belongs to.
        agent_id: FK to the agent.
        user_message_id: For agent turns, the originating user turn.
        generation_time: Elapsed generation time in ms, agent turns only.
        is_published_to_square: Whether the turn may appear on the square feed.
        created_at: ISO8601 creation timestamp.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_agent_user_id", "agent_id", "user_id", "id"),
        Index("ix_messages_published", "is_published_to_square", "id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_sortable_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_images_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=MessageType.text.value)
    sender_kind: Mapped[str | None] = mapped_column(String(10), nullable=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    agent_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    user_message_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    generation_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_published_to_square: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    agent: Mapped["Agent"] = relationship("Agent", back_populates="messages")
    user: Mapped["User"] = relationship("User", back_populates="messages")
    user_message: Mapped[Optional["Message"]] = relationship("Message", remote_side=[id])

    @property
    def reference_images(self) -> list[str] | None:
        """Decoded reference images, or None when absent or invalid."""
        return decode_string_list(self.reference_images_json)

    def resolved_sender_kind(self) -> SenderKind:
        """Return the author of this turn.

        Falls back to the legacy rule (agent iff a generation time or a
        generated image is recorded) when sender_kind is NULL.
        """
        if self.sender_kind:
            return SenderKind(self.sender_kind)
        if self.generation_time is not None or self.image_data:
            return SenderKind.agent
        return SenderKind.user

    def __repr__(self) -> str:
        return f"<Message(id={self.id!r}, type={self.type!r})>"


class Settings(Base):
    """Global settings singleton (id = 'global').

    Stores endpoint / credential / model triples for each external service,
    the image-hosting endpoint and token, and the admin password hash.
    ``version`` increments on every update.
    """

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=SETTINGS_SINGLETON_ID)
    image_api_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_api_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_model: Mapped[str | None] = mapped_column(String(200), nullable=True)
    moderation_api_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    moderation_api_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    moderation_model: Mapped[str | None] = mapped_column(String(200), nullable=True)
    speech_api_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    speech_api_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    speech_model: Mapped[str | None] = mapped_column(String(200), nullable=True)
    imagebed_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    imagebed_token: Mapped[str | None] = mapped_column(String(500), nullable=True)
    admin_password_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[str] = mapped_column(String(50), nullable=False, default=utc_now_iso)

    def __repr__(self) -> str:
        return f"<Settings(id={self.id!r}, version={self.version})>"


def decode_string_list(raw: str | None) -> list[str] | None:
    """Decode a JSON array of strings, keeping only non-empty strings.

    Returns None (not an empty list) for NULL, malformed JSON, a non-array,
    or an array with no non-empty strings.
    """
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError):
        return None
    if not isinstance(parsed, list):
        return None
    items = [item for item in parsed if isinstance(item, str) and item]
    return items or None


def encode_string_list(items: list[str] | None) -> str | None:
    """Encode reference images for storage; empty input is stored as NULL."""
    if not items:
        return None
    return json.dumps(items)
