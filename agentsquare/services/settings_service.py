"""Service for the global settings singleton.

Provides get-or-create access, patch-style updates with secret masking
rules, and the admin password hash.
"""

import hashlib
import hmac
import logging
from typing import Any

from sqlalchemy.orm import Session

from agentsquare.db.models import SETTINGS_SINGLETON_ID, Settings, utc_now_iso
from agentsquare.utils.redaction import is_masked, mask_secret, redact_for_logging

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_PASSWORD = "admin123"

# Fields that can be updated via PATCH
_PLAIN_FIELDS = {
    "image_api_url", "image_model",
    "moderation_api_url", "moderation_model",
    "speech_api_url", "speech_model",
    "imagebed_url",
}
SECRET_FIELDS = {
    "image_api_key", "moderation_api_key", "speech_api_key", "imagebed_token",
}
_MUTABLE_FIELDS = _PLAIN_FIELDS | SECRET_FIELDS | {"admin_password"}


def hash_password(password: str) -> str:
    """SHA-256 hex digest of an admin password."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class SettingsService:
    """CRUD service for the Settings singleton."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_or_create(self) -> Settings:
        """Return the settings singleton, creating it if absent."""
        settings = self._db.get(Settings, SETTINGS_SINGLETON_ID)
        if settings is None:
            settings = Settings(id=SETTINGS_SINGLETON_ID)
            self._db.add(settings)
            self._db.flush()
            logger.info("Created settings singleton")
        return settings

    def update(self, patch: dict[str, Any]) -> Settings:
        """Apply patch-style updates to settings.

        Secret values that still carry the mask prefix are ignored (the
        client echoed the masked value back). Empty strings clear a field.
        ``admin_password`` is stored hashed; an empty password is ignored.

        Args:
            patch: Dict of field names to new values.

        Returns:
            Updated Settings instance.

        Raises:
            ValueError: If patch contains unknown field names.
        """
        unknown = set(patch.keys()) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown setting fields: {sorted(unknown)}")

        settings = self.get_or_create()
        changed = []
        for key, value in patch.items():
            if value is None:
                continue
            if key == "admin_password":
                if value:
                    settings.admin_password_hash = hash_password(value)
                    changed.append(key)
                continue
            if key in SECRET_FIELDS and is_masked(value):
                continue
            setattr(settings, key, value.strip() or None)
            changed.append(key)

        if changed:
            settings.version = (settings.version or 0) + 1
            settings.updated_at = utc_now_iso()
            self._db.flush()
            logger.info(
                "Settings updated to version %d: %s",
                settings.version,
                redact_for_logging({k: patch[k] for k in changed}),
            )
        return settings

    def verify_admin_password(self, password: str) -> bool:
        """Check a password against the stored hash, or the default when unset."""
        settings = self._db.get(Settings, SETTINGS_SINGLETON_ID)
        expected = (
            settings.admin_password_hash
            if settings is not None and settings.admin_password_hash
            else hash_password(DEFAULT_ADMIN_PASSWORD)
        )
        return hmac.compare_digest(hash_password(password), expected)

    def masked_view(self) -> dict[str, Any]:
        """Client-safe representation: secrets masked with has_* flags."""
        settings = self.get_or_create()
        view: dict[str, Any] = {field: getattr(settings, field) or "" for field in _PLAIN_FIELDS}
        for field in SECRET_FIELDS:
            value = getattr(settings, field)
            view[field] = mask_secret(value)
            view[f"has_{field}"] = bool(value)
        view["has_admin_password"] = bool(settings.admin_password_hash)
        view["version"] = settings.version
        view["updated_at"] = settings.updated_at
        return view
