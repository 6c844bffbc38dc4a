"""Secret masking and redaction for client responses and logs.

Settings secrets are only ever shown to clients as a masked suffix, and
upstream error bodies are scrubbed before they reach a chat turn, an
event stream or a log line.
"""

import re

MASK_PREFIX = "••••••"

_REDACTED = "***REDACTED***"

# Substrings matched case-insensitively against dict keys
_SENSITIVE_KEY_PARTS = frozenset({
    "key", "token", "password", "secret", "authorization",
})

_SENSITIVE_VALUE_PATTERN = re.compile(
    r"(?i)"
    r"(?:"
    r"Bearer\s+[\w\-\.~\+/=]+"
    r"|"
    r'"(?:api_?key|token|password|secret|authorization)"\s*:\s*"[^"]*"'
    r"|"
    r"(?:api_?key|token|password|secret)\s*[=:]\s*\S+"
    r"|"
    r"sk-[A-Za-z0-9\-_]{8,}"
    r")",
)


def mask_secret(value: str | None) -> str:
    """Return the masked display form of a stored secret.

    Empty or missing values mask to an empty string; anything else is
    shown as the mask prefix plus its last four characters.
    """
    if not value:
        return ""
    return MASK_PREFIX + value[-4:]


def is_masked(value: str) -> bool:
    """True when a client echoed a masked secret back unchanged."""
    return value.startswith(MASK_PREFIX)


def redact_for_logging(obj: dict) -> dict:
    """Copy a dict with values under secret-looking keys replaced.

    Nested dicts are redacted recursively. The input is not mutated.
    """
    result = {}
    for key, value in obj.items():
        lowered = key.lower()
        if any(part in lowered for part in _SENSITIVE_KEY_PARTS):
            result[key] = _REDACTED if value else value
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value)
        else:
            result[key] = value
    return result


def sanitize_error_message(msg: str | None, max_length: int = 500) -> str | None:
    """Scrub credentials from upstream error text and bound its length.

    Args:
        msg: Error text (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated text, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERN.sub(_REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[: max_length - 3] + "..."
    return sanitized
