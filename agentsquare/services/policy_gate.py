"""Content policy gate: keyword precheck and model-based audit.

``precheck`` runs before anything is persisted and never touches the
network. ``audit`` asks the moderation model for a strict-JSON verdict
once the user turn has been stored.
"""

import json
import logging
from dataclasses import dataclass

import httpx

from agentsquare.services.chat_client import (
    extract_json_object,
    extract_message_text,
    post_chat_completion,
)
from agentsquare.services.config_resolver import ModerationFailMode, ServiceConfig

logger = logging.getLogger(__name__)

BANNED_KEYWORDS: tuple[str, ...] = (
    "色情",
    "淫秽",
    "裸露",
    "成人",
    "性爱",
    "性行为",
    "强奸",
    "未成年人",
    "porn",
    "sex",
    "nude",
    "hentai",
    "erotic",
    "nsfw",
)

DEFAULT_POLICY_RULES = (
    "Default: no sexual, violent, illegal or privacy-violating content, "
    "and nothing else high-risk."
)
DEFAULT_BLOCK_REASON = "The content did not pass moderation."
UNPARSEABLE_BLOCK_REASON = "The moderation service returned an unreadable verdict."
PRECHECK_BLOCK_REASON = "Your message contains restricted content."


@dataclass(frozen=True)
class AuditResult:
    """Outcome of a policy check."""

    allowed: bool
    reason: str | None = None


ALLOWED = AuditResult(allowed=True)


def precheck(text: str) -> AuditResult:
    """Case-insensitive substring match against the keyword denylist."""
    lowered = text.lower()
    for keyword in BANNED_KEYWORDS:
        if keyword in lowered:
            logger.info("Precheck blocked message on a denylisted keyword")
            return AuditResult(allowed=False, reason=PRECHECK_BLOCK_REASON)
    return ALLOWED


def build_audit_messages(
    content: str, reference_image_count: int, policy_prompt: str | None
) -> list[dict[str, str]]:
    """Moderation prompt asking for ``{"allowed": bool, "reason": str}``."""
    rules = policy_prompt.strip() if policy_prompt and policy_prompt.strip() else DEFAULT_POLICY_RULES
    system = (
        "You are a content safety reviewer. Decide whether the user's input "
        "complies with safety rules and the agent's rules. "
        'Output strict JSON only: {"allowed":true|false,"reason":"..."}. '
        f"Agent rules (if any): {rules}"
    )
    user = f"User text: {content}"
    if reference_image_count > 0:
        user += f"\nReference image count: {reference_image_count}"
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def parse_verdict(text: str, fail_mode: ModerationFailMode) -> AuditResult:
    """Interpret moderation output.

    The first-'{'-to-last-'}' span is parsed as JSON. Only an explicit
    ``"allowed": false`` blocks. Output that cannot be parsed follows
    ``fail_mode``.
    """
    span = extract_json_object(text)
    parsed = None
    if span is not None:
        try:
            parsed = json.loads(span)
        except ValueError:
            parsed = None

    if not isinstance(parsed, dict):
        if fail_mode is ModerationFailMode.closed:
            logger.warning("Unparseable moderation verdict, failing closed")
            return AuditResult(allowed=False, reason=UNPARSEABLE_BLOCK_REASON)
        logger.warning("Unparseable moderation verdict, failing open")
        return ALLOWED

    if parsed.get("allowed") is False:
        reason = parsed.get("reason")
        if not isinstance(reason, str) or not reason.strip():
            reason = DEFAULT_BLOCK_REASON
        return AuditResult(allowed=False, reason=reason)
    return ALLOWED


class ContentPolicyGate:
    """Runs the moderation-model audit.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def audit(
        self,
        config: ServiceConfig,
        content: str,
        reference_image_count: int,
        policy_prompt: str | None,
        *,
        timeout: float,
        fail_mode: ModerationFailMode = ModerationFailMode.open,
    ) -> AuditResult:
        """Ask the moderation model whether the request may proceed.

        Auto-allows when no moderation endpoint/model is configured.

        Raises:
            ExternalServiceError: When the moderation call itself fails.
        """
        if not config.has_endpoint:
            logger.debug("Moderation not configured, skipping audit")
            return ALLOWED

        data = await post_chat_completion(
            config,
            build_audit_messages(content, reference_image_count, policy_prompt),
            timeout=timeout,
            service="Moderation",
            transport=self._transport,
        )
        return parse_verdict(extract_message_text(data), fail_mode)
