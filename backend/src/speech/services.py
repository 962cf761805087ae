"""
Transcript Acquirer backed by Google Gemini.

Sends one staged audio file and a language hint, gets back a best-effort
transcript. Provider failures surface as AcquisitionError.
"""
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
)

from src.voice.exceptions import AcquisitionError
from src.voice.languages import language_name

logger = logging.getLogger(__name__)


# Audio container -> MIME type sent to the model; unknown extensions fall back to webm
AUDIO_MIME_TYPES: Dict[str, str] = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".webm": "audio/webm",
    ".m4a": "audio/mp4",
}
DEFAULT_AUDIO_MIME_TYPE = "audio/webm"

RETRYABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.Aborted,
)


def _should_retry_gemini_error(exception: Exception) -> bool:
    """
    Retry rate limits, 5xx and timeouts; never InvalidArgument or
    PermissionDenied.
    """
    if isinstance(exception, RETRYABLE_ERRORS):
        logger.warning(f"Gemini API error (will retry): {str(exception)}")
        return True
    return False


def mime_type_for(audio_path: Path) -> str:
    return AUDIO_MIME_TYPES.get(audio_path.suffix.lower(), DEFAULT_AUDIO_MIME_TYPE)


class TranscriptAcquirer(Protocol):
    async def transcribe(self, audio_path: Path, language_code: str) -> str:
        ...


class GeminiTranscriptionService:
    """
    Speech-to-text through a Gemini multimodal model.
    """

    def __init__(self, model: genai.GenerativeModel, request_timeout: float | None = None):
        self.model = model
        self.request_timeout = request_timeout

    async def transcribe(self, audio_path: Path, language_code: str) -> str:
        """
        Transcribes one audio file.

        Returns:
            The transcript, or an empty string when nothing was heard

        Raises:
            AcquisitionError: If the provider call fails
        """
        audio_path = Path(audio_path)
        mime_type = mime_type_for(audio_path)
        logger.info(f"Transcription started: {audio_path.name} ({mime_type}, language={language_code})")

        audio_bytes = await asyncio.to_thread(audio_path.read_bytes)
        parts = self._build_prompt_parts({"mime_type": mime_type, "data": audio_bytes}, language_code)

        try:
            transcript = await self._call_gemini_with_retry(parts)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini transcription failed: {e}", exc_info=True)
            raise AcquisitionError(
                f"Speech service error: {e}",
                retryable=_should_retry_gemini_error(e),
            ) from e

        logger.info(f"Transcription completed: {len(transcript)} characters")
        return transcript

    def _build_prompt_parts(self, audio_part: Dict[str, Any], language_code: str) -> List[Any]:
        prompt = f"""Transcribe this shop-counter voice note spoken in {language_name(language_code)} ({language_code}).

Rules:
- Return only the transcript text, no commentary or formatting
- Keep product names as spoken; do not translate them
- Keep numbers as spoken (digits or words), including prices
- If nothing intelligible is said, return an empty response
"""
        return [prompt, audio_part]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception(_should_retry_gemini_error),
        reraise=True
    )
    async def _call_gemini_with_retry(self, parts: List[Any]) -> str:
        request_options = {"timeout": self.request_timeout} if self.request_timeout else None
        response = await self.model.generate_content_async(parts, request_options=request_options)
        try:
            text = response.text
        except ValueError:
            # No candidate parts (blocked or silent audio)
            logger.warning("Gemini returned no transcript parts")
            return ""
        return (text or "").strip()
