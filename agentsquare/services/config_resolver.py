"""Configuration resolver for external service endpoints.

Merges the stored settings singleton with environment fallbacks into typed
bundles. The settings row is read fresh on every call so admin updates take
effect without a restart; call sites never reach into storage directly.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session, sessionmaker

from agentsquare.db.models import SETTINGS_SINGLETON_ID, Settings

logger = logging.getLogger(__name__)

DEFAULT_SPEECH_MODEL = "qwen3-asr"


class ModerationFailMode(str, Enum):
    """What an unparseable moderation verdict means.

    open: treat as allowed (availability over strictness).
    closed: treat as blocked.
    """

    open = "open"
    closed = "closed"


@dataclass(frozen=True)
class ServiceConfig:
    """Endpoint, credential and model for one external service."""

    api_url: str = ""
    api_key: str = ""
    model: str = ""

    @property
    def has_endpoint(self) -> bool:
        """Endpoint and model are set (credential optional)."""
        return bool(self.api_url and self.model)

    @property
    def is_complete(self) -> bool:
        """Endpoint, credential and model are all set."""
        return bool(self.api_url and self.api_key and self.model)


@dataclass(frozen=True)
class HostingConfig:
    """Image-hosting endpoint and bearer token."""

    base_url: str = ""
    token: str = ""

    @property
    def is_configured(self) -> bool:
        """Hosting is enabled once a base URL is set; the token is optional."""
        return bool(self.base_url)


@dataclass(frozen=True)
class Timeouts:
    """Per-call timeouts in seconds."""

    generation: float = 180.0
    auxiliary: float = 30.0
    hosting: float = 30.0
    geolocation: float = 3.0
    speech: float = 30.0


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


def _env_seconds(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    return value if value > 0 else default


def _pick(stored: str | None, env_name: str, default: str = "") -> str:
    """Stored value wins unless empty; then the environment, then default."""
    if stored and stored.strip():
        return stored.strip()
    return _env(env_name) or default


class ConfigurationResolver:
    """Reads stored settings with environment fallback at call time.

    Args:
        session_factory: Factory for short-lived sessions. Each lookup opens
            and closes its own session.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _load(self) -> Settings | None:
        db: Session = self._session_factory()
        try:
            row = db.get(Settings, SETTINGS_SINGLETON_ID)
            if row is not None:
                db.expunge(row)
            return row
        finally:
            db.close()

    def image(self) -> ServiceConfig:
        """Image-generation endpoint (IMAGE_API_URL / _KEY / IMAGE_MODEL)."""
        row = self._load()
        return ServiceConfig(
            api_url=_pick(row.image_api_url if row else None, "IMAGE_API_URL"),
            api_key=_pick(row.image_api_key if row else None, "IMAGE_API_KEY"),
            model=_pick(row.image_model if row else None, "IMAGE_MODEL"),
        )

    def moderation(self) -> ServiceConfig:
        """Moderation/summarization endpoint (MODERATION_API_URL / _KEY / _MODEL)."""
        row = self._load()
        return ServiceConfig(
            api_url=_pick(row.moderation_api_url if row else None, "MODERATION_API_URL"),
            api_key=_pick(row.moderation_api_key if row else None, "MODERATION_API_KEY"),
            model=_pick(row.moderation_model if row else None, "MODERATION_MODEL"),
        )

    def speech(self) -> ServiceConfig:
        """Speech transcription endpoint (SPEECH_API_URL / _KEY / _MODEL)."""
        row = self._load()
        return ServiceConfig(
            api_url=_pick(row.speech_api_url if row else None, "SPEECH_API_URL"),
            api_key=_pick(row.speech_api_key if row else None, "SPEECH_API_KEY"),
            model=_pick(
                row.speech_model if row else None, "SPEECH_MODEL", DEFAULT_SPEECH_MODEL
            ),
        )

    def hosting(self) -> HostingConfig:
        """Image-hosting endpoint (IMAGEBED_URL / IMAGEBED_TOKEN)."""
        row = self._load()
        return HostingConfig(
            base_url=_pick(row.imagebed_url if row else None, "IMAGEBED_URL").rstrip("/"),
            token=_pick(row.imagebed_token if row else None, "IMAGEBED_TOKEN"),
        )

    def moderation_fail_mode(self) -> ModerationFailMode:
        """AGENTSQUARE_MODERATION_FAIL_MODE, defaulting to open."""
        raw = _env("AGENTSQUARE_MODERATION_FAIL_MODE").lower()
        if raw == ModerationFailMode.closed.value:
            return ModerationFailMode.closed
        if raw and raw != ModerationFailMode.open.value:
            logger.warning("Unknown moderation fail mode %r, using 'open'", raw)
        return ModerationFailMode.open

    def timeouts(self) -> Timeouts:
        """Per-call timeouts from AGENTSQUARE_*_TIMEOUT variables."""
        defaults = Timeouts()
        return Timeouts(
            generation=_env_seconds("AGENTSQUARE_GENERATION_TIMEOUT", defaults.generation),
            auxiliary=_env_seconds("AGENTSQUARE_AUX_TIMEOUT", defaults.auxiliary),
            hosting=_env_seconds("AGENTSQUARE_HOSTING_TIMEOUT", defaults.hosting),
            geolocation=_env_seconds("AGENTSQUARE_GEO_TIMEOUT", defaults.geolocation),
            speech=_env_seconds("AGENTSQUARE_SPEECH_TIMEOUT", defaults.speech),
        )
