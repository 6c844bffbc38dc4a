"""API route for speech-to-text transcription.

Uses /api/v1/speech-to-text prefix.
"""

import logging

from fastapi import APIRouter, Depends

from agentsquare.api.deps import get_resolver, get_speech_adapter
from agentsquare.api.schemas import SpeechRequest, SpeechResponse
from agentsquare.errors import AgentSquareError
from agentsquare.services.config_resolver import ConfigurationResolver
from agentsquare.services.errors import ExternalServiceError
from agentsquare.services.speech_adapter import SpeechAdapter, decode_audio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/speech-to-text", tags=["speech"])


@router.post("", response_model=SpeechResponse)
async def speech_to_text(
    data: SpeechRequest,
    resolver: ConfigurationResolver = Depends(get_resolver),
    adapter: SpeechAdapter = Depends(get_speech_adapter),
) -> SpeechResponse:
    """Transcribe a recorded audio clip.

    Raises:
        AgentSquareError: VALIDATION_ERROR, CONFIG_MISSING, AI_SERVICE_ERROR,
            TIMEOUT or PARSE_ERROR.
    """
    if data.audio_file is None or not data.audio_file.data:
        raise AgentSquareError.from_code("VALIDATION_ERROR", reason="No audio data provided.")

    try:
        audio = decode_audio(data.audio_file.data)
        text = await adapter.transcribe(
            resolver.speech(),
            audio,
            content_type=data.audio_file.type,
            filename=data.audio_file.name,
            timeout=resolver.timeouts().speech,
        )
    except ExternalServiceError as e:
        raise e.to_app_error() from e
    return SpeechResponse(text=text)
