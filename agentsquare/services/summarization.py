"""Caption generation for agent turns.

Short requests get a templated caption; longer ones are compressed by the
moderation model. This path never raises: every failure degrades to a
locally truncated caption so it cannot abort a generation.
"""

import logging

import httpx

from agentsquare.services.chat_client import extract_message_text, post_chat_completion
from agentsquare.services.config_resolver import ServiceConfig
from agentsquare.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SUMMARY_THRESHOLD = 50
CAPTION_PREFIX = "Presenting: "

_SUMMARY_SYSTEM_PROMPT = (
    "You are a captioning assistant. Without adding new information, condense "
    "the user's request into a caption of at most 30 words describing the image "
    "to be created. Output only the caption text, no explanation."
)


def template_caption(content: str) -> str:
    """Deterministic caption for short requests."""
    return f"{CAPTION_PREFIX}{content}"


def truncated_caption(content: str) -> str:
    """Fallback caption built from the first characters of the request."""
    return f"{CAPTION_PREFIX}{content[:SUMMARY_THRESHOLD]}…"


class SummarizationAdapter:
    """Produces the caption stored as an agent turn's content.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def summarize(self, config: ServiceConfig, content: str, timeout: float) -> str:
        """Return a caption for ``content``.

        The threshold is measured on the raw text, whitespace included.
        """
        if len(content) <= SUMMARY_THRESHOLD:
            return template_caption(content)
        if not config.has_endpoint:
            return truncated_caption(content)

        try:
            data = await post_chat_completion(
                config,
                [
                    {"role": "system", "content": _SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
                timeout=timeout,
                service="Summarization",
                transport=self._transport,
            )
        except ExternalServiceError as e:
            logger.warning("Summary failed, using truncated caption: %s", e)
            return truncated_caption(content)

        summary = extract_message_text(data).strip()
        if not summary:
            logger.warning("Summary response was empty, using truncated caption")
            return truncated_caption(content)
        return f"{CAPTION_PREFIX}{summary}"
