import logging
import google.generativeai as genai

from src.config import settings
from src.speech.services import GeminiTranscriptionService

logger = logging.getLogger(__name__)


async def get_transcription_service() -> GeminiTranscriptionService:
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; audio transcription calls will fail")

    genai.configure(api_key=settings.GEMINI_API_KEY)
    model = genai.GenerativeModel(settings.GEMINI_MODEL)

    return GeminiTranscriptionService(model=model, request_timeout=settings.GEMINI_TIMEOUT)
