"""Admin session tokens.

A token is ``b64url(json{"exp": <epoch seconds>}) + "." + b64url(hmac)``,
signed with HMAC-SHA256. The signing secret comes from
AGENTSQUARE_ADMIN_SECRET; without it, a random per-process secret is used
and tokens do not survive a restart.
"""

import base64
import hashlib
import hmac
import json
import logging
import os
import secrets
import time

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 24 * 60 * 60

_ephemeral_secret: bytes | None = None


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def get_signing_secret() -> bytes:
    """Return the HMAC secret (env, else a per-process random value)."""
    global _ephemeral_secret
    configured = os.environ.get("AGENTSQUARE_ADMIN_SECRET", "").strip()
    if configured:
        return configured.encode("utf-8")
    if _ephemeral_secret is None:
        logger.warning(
            "AGENTSQUARE_ADMIN_SECRET is not set; admin tokens will not survive a restart"
        )
        _ephemeral_secret = secrets.token_bytes(32)
    return _ephemeral_secret


def _sign(payload: str, secret: bytes) -> str:
    return _b64url(hmac.new(secret, payload.encode("utf-8"), hashlib.sha256).digest())


def issue_token(ttl_seconds: int = TOKEN_TTL_SECONDS, now: float | None = None) -> tuple[str, int]:
    """Create a signed admin token.

    Returns:
        (token, expiry as epoch seconds)
    """
    expires_at = int((now if now is not None else time.time()) + ttl_seconds)
    payload = _b64url(json.dumps({"exp": expires_at}, separators=(",", ":")).encode("utf-8"))
    return f"{payload}.{_sign(payload, get_signing_secret())}", expires_at


def verify_token(token: str | None, now: float | None = None) -> bool:
    """True when ``token`` carries a valid signature and has not expired."""
    if not token or token.count(".") != 1:
        return False
    payload, signature = token.split(".")
    expected = _sign(payload, get_signing_secret())
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        return False
    try:
        claims = json.loads(_b64url_decode(payload))
    except ValueError:
        return False
    expires_at = claims.get("exp") if isinstance(claims, dict) else None
    if not isinstance(expires_at, int):
        return False
    return expires_at > (now if now is not None else time.time())
