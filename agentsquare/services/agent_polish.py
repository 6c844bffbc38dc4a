"""Rewrites an agent's public copy with the moderation model.

Given the persona prompt, the model polishes the name, description,
skills and policy prompt, returning strict JSON with the same keys.
"""

import json
import logging
from dataclasses import asdict, dataclass

import httpx

from agentsquare.services.chat_client import (
    extract_json_object,
    extract_message_text,
    post_chat_completion,
)
from agentsquare.services.config_resolver import ServiceConfig
from agentsquare.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

_POLISH_SYSTEM_PROMPT = (
    "You are an experienced product copywriter and prompt editor. Based on the "
    "agent's system prompt, polish these fields: description, skills and "
    "policyPrompt. If a name is given, output a shorter, more memorable name.\n"
    "Rules:\n"
    "1) Keep the original meaning; do not add capabilities, promises or data.\n"
    "2) Write naturally and concisely.\n"
    "3) policyPrompt lists only what must not be generated or answered; output "
    "an empty string if nothing needs to be forbidden.\n"
    "4) A field that is an empty string in the input must stay an empty string.\n"
    "5) Output strict JSON only (no Markdown, no explanation): "
    '{"name":"...","description":"...","skills":"...","policyPrompt":"..."}'
)


@dataclass
class AgentCopy:
    """The agent fields the polish call reads and rewrites."""

    name: str = ""
    description: str = ""
    skills: str = ""
    policy_prompt: str = ""


def _text(value: object) -> str:
    return value if isinstance(value, str) else ""


def build_polish_messages(system_prompt: str, current: AgentCopy) -> list[dict[str, str]]:
    user = (
        f"[Current name]\n{current.name}\n\n"
        f"[Agent system prompt]\n{system_prompt}\n\n"
        f"[Current description]\n{current.description}\n\n"
        f"[Current skills]\n{current.skills}\n\n"
        f"[Current policy prompt]\n{current.policy_prompt}\n"
    )
    return [
        {"role": "system", "content": _POLISH_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def parse_polished(text: str, current: AgentCopy) -> AgentCopy:
    """Parse the model's JSON; fields empty on input stay empty.

    Raises:
        ExternalServiceError: PARSE_ERROR if no JSON object can be read.
    """
    span = extract_json_object(text)
    if span is None:
        raise ExternalServiceError(code="PARSE_ERROR", message="No JSON found in the model output")
    try:
        parsed = json.loads(span)
    except ValueError as e:
        raise ExternalServiceError(code="PARSE_ERROR", message="Model output is not valid JSON") from e
    if not isinstance(parsed, dict):
        raise ExternalServiceError(code="PARSE_ERROR", message="Model output is not a JSON object")

    polished = AgentCopy(
        name=_text(parsed.get("name")),
        description=_text(parsed.get("description")),
        skills=_text(parsed.get("skills")),
        policy_prompt=_text(parsed.get("policyPrompt")),
    )
    for key, value in asdict(current).items():
        if not value:
            setattr(polished, key, "")
    return polished


class AgentPolisher:
    """Runs the polish request.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def polish(
        self, config: ServiceConfig, system_prompt: str, current: AgentCopy, timeout: float
    ) -> AgentCopy:
        """Return polished copy for an agent.

        Raises:
            ExternalServiceError: CONFIG_MISSING, TIMEOUT, AI_SERVICE_ERROR
                or PARSE_ERROR.
        """
        if not config.has_endpoint:
            raise ExternalServiceError(
                code="CONFIG_MISSING", message="The moderation model is not configured."
            )
        data = await post_chat_completion(
            config,
            build_polish_messages(system_prompt, current),
            timeout=timeout,
            service="Polish",
            transport=self._transport,
        )
        return parse_polished(extract_message_text(data), current)
