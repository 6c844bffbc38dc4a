"""Pydantic request/response schemas for the AgentSquare API.

JSON uses camelCase field names; models accept either camelCase aliases
or snake_case attribute names (``populate_by_name``).
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------


class AgentPublic(ApiModel):
    """Agent as shown to everyone (persona and policy prompts stripped)."""

    id: str
    name: str
    avatar: str | None = None
    description: str | None = None
    skills: str | None = None
    min_content_length: int = 0
    min_reference_images: int = 0
    created_at: str


class AgentAdmin(AgentPublic):
    """Full agent record for admins."""

    system_prompt: str
    policy_prompt: str | None = None
    is_active: bool = True
    updated_at: str


class AgentCreate(ApiModel):
    """Request body for creating an agent."""

    name: str
    system_prompt: str
    avatar: str | None = None
    description: str | None = None
    skills: str | None = None
    policy_prompt: str | None = None
    min_content_length: int = Field(default=0, ge=0)
    min_reference_images: int = Field(default=0, ge=0)
    is_active: bool = True


class AgentUpdate(ApiModel):
    """Request body for updating an agent (all fields optional)."""

    name: str | None = None
    system_prompt: str | None = None
    avatar: str | None = None
    description: str | None = None
    skills: str | None = None
    policy_prompt: str | None = None
    min_content_length: int | None = Field(default=None, ge=0)
    min_reference_images: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class PolishRequest(ApiModel):
    """Request body for polishing an agent's public copy."""

    system_prompt: str = ""
    name: str = ""
    description: str = ""
    skills: str = ""
    policy_prompt: str = ""


class PolishResponse(ApiModel):
    name: str
    description: str
    skills: str
    policy_prompt: str


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class SubmitMessageRequest(ApiModel):
    """Request body for sending a chat message."""

    content: str | None = None
    reference_images: list[str] = Field(default_factory=list)
    publish_to_square: bool = False

    @field_validator("reference_images", mode="before")
    @classmethod
    def _keep_string_images(cls, v: object) -> list[str]:
        """Treat a missing or non-list value as no images; drop non-string entries."""
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, str)]


class HistoryMessage(ApiModel):
    """One turn in a conversation history page."""

    id: str
    content: str
    image_data: str | None = None
    reference_images: list[str] | None = None
    type: str
    sender: str
    sender_name: str
    sender_avatar: str | None = None
    generation_time: int | None = None
    timestamp: str


class HistoryResponse(ApiModel):
    messages: list[HistoryMessage]
    has_more: bool
    next_cursor: str | None = None


class SquareAgent(ApiModel):
    id: str
    name: str
    avatar: str | None = None


class SquareUser(ApiModel):
    id: str
    nickname: str
    avatar: str | None = None


class SquareItem(ApiModel):
    """A published generation result with its originating request."""

    id: str
    content: str
    caption: str
    image_data: str
    reference_images: list[str] | None = None
    generation_time: int
    timestamp: str
    agent: SquareAgent
    user: SquareUser


class SquareResponse(ApiModel):
    items: list[SquareItem]
    has_more: bool
    next_cursor: str | None = None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(ApiModel):
    id: str
    nickname: str
    avatar: str | None = None
    created_at: str


# ---------------------------------------------------------------------------
# Settings & admin
# ---------------------------------------------------------------------------


class SettingsResponse(ApiModel):
    """Settings with every secret masked."""

    image_api_url: str = ""
    image_api_key: str = ""
    has_image_api_key: bool = False
    image_model: str = ""
    moderation_api_url: str = ""
    moderation_api_key: str = ""
    has_moderation_api_key: bool = False
    moderation_model: str = ""
    speech_api_url: str = ""
    speech_api_key: str = ""
    has_speech_api_key: bool = False
    speech_model: str = ""
    imagebed_url: str = ""
    imagebed_token: str = ""
    has_imagebed_token: bool = False
    has_admin_password: bool = False
    version: int = 1
    updated_at: str | None = None


class SettingsPatch(ApiModel):
    """Request schema for updating settings (all fields optional)."""

    image_api_url: str | None = None
    image_api_key: str | None = None
    image_model: str | None = None
    moderation_api_url: str | None = None
    moderation_api_key: str | None = None
    moderation_model: str | None = None
    speech_api_url: str | None = None
    speech_api_key: str | None = None
    speech_model: str | None = None
    imagebed_url: str | None = None
    imagebed_token: str | None = None
    admin_password: str | None = None


class LoginRequest(ApiModel):
    password: str


class LoginResponse(ApiModel):
    token: str
    expires_at: int


class VerifyResponse(ApiModel):
    valid: bool


class AdminMessage(ApiModel):
    """A turn in the admin message list."""

    id: str
    content: str
    image_data: str | None = None
    reference_images: list[str] | None = None
    type: str
    sender: str
    agent_id: str
    agent_name: str | None = None
    user_id: str
    user_nickname: str | None = None
    user_ip: str | None = None
    generation_time: int | None = None
    is_published_to_square: bool = False
    timestamp: str


class AdminMessageListResponse(ApiModel):
    items: list[AdminMessage]
    total: int
    page: int
    page_size: int


# ---------------------------------------------------------------------------
# Speech
# ---------------------------------------------------------------------------


class AudioFile(ApiModel):
    data: str = ""
    type: str | None = None
    name: str | None = None


class SpeechRequest(BaseModel):
    audio_file: AudioFile | None = None


class SpeechResponse(ApiModel):
    text: str
