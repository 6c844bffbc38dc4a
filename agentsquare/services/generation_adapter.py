"""Image-generation adapter.

Posts the built prompt to the configured chat-completion endpoint and pulls
the generated image out of the markdown the model replies with.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from agentsquare.services.chat_client import extract_message_text, post_chat_completion
from agentsquare.services.config_resolver import ServiceConfig
from agentsquare.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

# Searched in this order; first match wins.
_BASE64_IMAGE_PATTERN = re.compile(r"!\[.*?\]\((data:image/[^;]+;base64,[^)]+)\)")
_URL_IMAGE_PATTERN = re.compile(r"\[.*?\]\((https?://[^)]+)\)")


@dataclass
class GenerationResult:
    """Parsed generation output.

    Attributes:
        image_reference: data URI or http(s) URL of the generated image.
        elapsed_ms: Wall-clock time from request dispatch to parsed result.
    """

    image_reference: str
    elapsed_ms: int


def extract_image_reference(text: str) -> str:
    """Extract the generated image from model output.

    A base64 data-URI markdown image takes priority over an http(s)
    markdown link.

    Raises:
        ExternalServiceError: PARSE_ERROR when neither pattern matches.
    """
    match = _BASE64_IMAGE_PATTERN.search(text) or _URL_IMAGE_PATTERN.search(text)
    if not match:
        raise ExternalServiceError(
            code="PARSE_ERROR",
            message="No image found in the generation response",
        )
    return match.group(1)


class GenerationAdapter:
    """Calls the image-generation endpoint.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def generate(
        self,
        config: ServiceConfig,
        messages: list[dict[str, Any]],
        timeout: float,
    ) -> GenerationResult:
        """Run one generation request.

        Raises:
            ExternalServiceError: On timeout, non-2xx, or unparseable output.
        """
        started = time.monotonic()
        data = await post_chat_completion(
            config,
            messages,
            timeout=timeout,
            service="Image generation",
            transport=self._transport,
        )
        image_reference = extract_image_reference(extract_message_text(data))
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info("Image generated in %d ms", elapsed_ms)
        return GenerationResult(image_reference=image_reference, elapsed_ms=elapsed_ms)
