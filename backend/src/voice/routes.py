"""
HTTP routes for voice item entry.
"""
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile, status

from src.config import settings
from src.voice.audio import staged_audio
from src.voice.dependencies import VoiceProcessingServiceDependency
from src.voice.languages import list_languages
from src.voice.schemas import (
    LanguageInfo,
    ProcessingContext,
    TranscriptRequest,
    TypedTranscript,
    VoiceProcessingResult,
)

router = APIRouter()


@router.post(
    "/process",
    response_model=VoiceProcessingResult,
    status_code=status.HTTP_200_OK,
    summary="Process a voice note into slip lines",
)
async def process_voice(
    service: VoiceProcessingServiceDependency,
    audio: UploadFile = File(..., description="Audio (webm, wav, mp3, flac, ogg, m4a), max 10MB"),
    language: str = Form(settings.VOICE_DEFAULT_LANGUAGE, description="Language code, e.g. 'hi' or 'hi-IN'"),
    shop_id: Optional[int] = Form(None, gt=0),
    slip_id: Optional[int] = Form(None, gt=0),
) -> VoiceProcessingResult:
    """
    Transcribe a voice note, extract sale lines and match them to the catalog.

    **Response:**
    - Success (200): Extracted items and matches; `status="no_items"` when nothing was recognized
    - Error (400): Empty, oversized or unsupported audio, or unsupported language
    - Error (502): Speech service unavailable (`retryable`, `manual_entry` hint)
    """
    context = ProcessingContext(shop_id=shop_id, slip_id=slip_id)
    async with staged_audio(audio) as staged:
        return await service.process_voice_input(staged, language, context)


@router.post(
    "/transcript",
    response_model=VoiceProcessingResult,
    status_code=status.HTTP_200_OK,
    summary="Process a typed transcript into slip lines",
)
async def process_transcript(
    request: TranscriptRequest,
    service: VoiceProcessingServiceDependency,
) -> VoiceProcessingResult:
    """
    Same pipeline as /process for a transcript typed by the user, without
    the speech service.
    """
    context = ProcessingContext(shop_id=request.shop_id, slip_id=request.slip_id)
    return await service.process_voice_input(
        TypedTranscript(text=request.transcript),
        request.language,
        context,
    )


@router.get(
    "/languages",
    response_model=List[LanguageInfo],
    status_code=status.HTTP_200_OK,
    summary="List supported voice languages",
)
async def get_languages() -> List[LanguageInfo]:
    return [LanguageInfo(**language) for language in list_languages()]
