"""Speech-to-text proxy adapter."""

import asyncio
import base64
import binascii
import logging

import httpx

from agentsquare.services.config_resolver import ServiceConfig
from agentsquare.services.errors import ExternalServiceError
from agentsquare.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_TYPE = "audio/webm"
DEFAULT_AUDIO_NAME = "audio.wav"


def decode_audio(data: str) -> bytes:
    """Decode base64 audio, accepting a bare payload or a data URI.

    Raises:
        ExternalServiceError: PARSE_ERROR if the payload is not base64.
    """
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ExternalServiceError(code="PARSE_ERROR", message="Audio data is not valid base64") from e


class SpeechAdapter:
    """Forwards recorded audio to the configured transcription endpoint.

    Args:
        transport: Optional httpx transport override.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def transcribe(
        self,
        config: ServiceConfig,
        audio: bytes,
        *,
        content_type: str | None,
        filename: str | None,
        timeout: float,
    ) -> str:
        """Upload ``audio`` as multipart ``file`` and return the transcript.

        Raises:
            ExternalServiceError: CONFIG_MISSING, TIMEOUT, AI_SERVICE_ERROR
                or PARSE_ERROR.
        """
        if not config.api_url:
            raise ExternalServiceError(
                code="CONFIG_MISSING", message="The speech transcription service is not configured."
            )

        headers = {}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        files = {
            "file": (
                filename or DEFAULT_AUDIO_NAME,
                audio,
                content_type or DEFAULT_AUDIO_TYPE,
            )
        }

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await asyncio.wait_for(
                    client.post(
                        config.api_url, headers=headers, data={"model": config.model}, files=files
                    ),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ExternalServiceError(
                code="TIMEOUT", message=f"Speech transcription timed out after {timeout:g}s"
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                code="AI_SERVICE_ERROR",
                message=f"Speech transcription failed: {type(e).__name__}",
            ) from e

        if not response.is_success:
            raise ExternalServiceError(
                code="AI_SERVICE_ERROR",
                message=(
                    f"Speech transcription failed: {response.status_code} "
                    f"{sanitize_error_message(response.text[:200]) or ''}".rstrip()
                ),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                code="PARSE_ERROR", message="Speech service returned a non-JSON response"
            ) from e

        text = data.get("text") if isinstance(data, dict) else None
        logger.info("Transcribed %d bytes of audio", len(audio))
        return text if isinstance(text, str) else ""
