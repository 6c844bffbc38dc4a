"""Admin authentication dependencies and login rate limiting.

Admin routes require ``Authorization: Bearer <token>`` where the token was
issued by POST /admin/login. Failed logins are rate limited per client
address.
"""

from __future__ import annotations

import logging
import threading
import time

from fastapi import Request

from agentsquare.errors import AgentSquareError
from agentsquare.services.admin_auth import verify_token
from agentsquare.utils.network import get_client_ip

logger = logging.getLogger(__name__)

# --- Rate limiting for failed admin logins ---
_LOGIN_FAIL_MAX = 10  # Max failures per address in the time window
_LOGIN_FAIL_WINDOW_SECONDS = 300
_login_failures: dict[str, list[float]] = {}
_login_lock = threading.Lock()


def is_login_rate_limited(client_ip: str) -> bool:
    """Check if the address has exceeded the failed-login limit.

    Args:
        client_ip: Client network address.

    Returns:
        True if the client should be blocked.
    """
    with _login_lock:
        now = time.monotonic()
        timestamps = [
            t for t in _login_failures.get(client_ip, []) if now - t < _LOGIN_FAIL_WINDOW_SECONDS
        ]
        _login_failures[client_ip] = timestamps
        return len(timestamps) >= _LOGIN_FAIL_MAX


def record_login_failure(client_ip: str) -> None:
    """Record a failed login for the given address."""
    with _login_lock:
        _login_failures.setdefault(client_ip, []).append(time.monotonic())


def reset_rate_limiter() -> None:
    """Reset the rate limiter state. Used by tests."""
    with _login_lock:
        _login_failures.clear()


def bearer_token(request: Request) -> str | None:
    """Extract the bearer token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_admin(request: Request) -> bool:
    """FastAPI dependency: True when the request carries a valid admin token."""
    return verify_token(bearer_token(request))


def require_admin(request: Request) -> None:
    """FastAPI dependency that rejects non-admin requests with 401.

    Raises:
        AgentSquareError: UNAUTHORIZED.
    """
    if not verify_token(bearer_token(request)):
        logger.info("Rejected admin request from %s", get_client_ip(request))
        raise AgentSquareError.from_code(
            "UNAUTHORIZED", reason="Admin login required or session expired."
        )
