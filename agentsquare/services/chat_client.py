"""Chat-completion transport shared by the generation, moderation,
summarization and polish calls.

Every call is bounded twice: by the httpx client timeout and by
asyncio.wait_for, so a stalled upstream releases its connection when the
deadline passes. Failures are translated to ExternalServiceError.
"""

import asyncio
import logging
from typing import Any

import httpx

from agentsquare.services.config_resolver import ServiceConfig
from agentsquare.services.errors import ExternalServiceError
from agentsquare.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)


async def post_chat_completion(
    config: ServiceConfig,
    messages: list[dict[str, Any]],
    *,
    timeout: float,
    service: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """POST a non-streaming chat-completion request and return the JSON body.

    Args:
        config: Endpoint, credential and model.
        messages: Ordered chat messages.
        timeout: Hard deadline in seconds.
        service: Service label used in error messages and logs.
        transport: Optional httpx transport (tests inject MockTransport).

    Returns:
        Decoded JSON response body.

    Raises:
        ExternalServiceError: TIMEOUT, AI_SERVICE_ERROR (transport failure or
            non-2xx) or PARSE_ERROR (body is not JSON).
    """
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    payload = {"model": config.model, "messages": messages, "stream": False}

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await asyncio.wait_for(
                client.post(config.api_url, json=payload, headers=headers),
                timeout=timeout,
            )
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.warning("%s request timed out after %.1fs", service, timeout)
        raise ExternalServiceError(
            code="TIMEOUT",
            message=f"{service} request timed out after {timeout:g}s",
        ) from e
    except httpx.RequestError as e:
        logger.warning("%s request failed: %s", service, type(e).__name__)
        raise ExternalServiceError(
            code="AI_SERVICE_ERROR",
            message=f"{service} request failed: {sanitize_error_message(str(e))}",
        ) from e

    if not response.is_success:
        body = sanitize_error_message(response.text[:200]) or ""
        raise ExternalServiceError(
            code="AI_SERVICE_ERROR",
            message=(
                f"{service} request failed: {response.status_code} "
                f"{response.reason_phrase}{f' - {body}' if body else ''}"
            ),
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ExternalServiceError(
            code="PARSE_ERROR",
            message=f"{service} returned a non-JSON response",
            status_code=response.status_code,
        ) from e
    if not isinstance(data, dict):
        raise ExternalServiceError(
            code="PARSE_ERROR",
            message=f"{service} returned an unexpected response shape",
            status_code=response.status_code,
        )
    return data


def extract_message_text(data: dict[str, Any]) -> str:
    """Return the assistant text from a chat-completion body.

    Reads choices[0].message.content, falling back to choices[0].delta.content.
    List-shaped content has its text parts concatenated. Missing content
    yields an empty string.
    """
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    first = choices[0]
    for key in ("message", "delta"):
        block = first.get(key)
        if not isinstance(block, dict):
            continue
        content = block.get("content")
        if isinstance(content, str) and content:
            return content
        if isinstance(content, list):
            parts = [
                part.get("text", "")
                for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str)
            ]
            joined = "".join(parts)
            if joined:
                return joined
    return ""


def extract_json_object(text: str) -> str | None:
    """Return the span from the first '{' to the last '}', if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]
