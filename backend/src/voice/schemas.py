from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Union
from pydantic import Field

from src.common.schemas import AppBaseModel, AppResponseModel
from src.config import settings
from src.extraction.schemas import ExtractionAmbiguity, NormalizedItem, RejectedCandidate
from src.matching.schemas import MatchResult, SlipLine


class AudioInput(AppBaseModel):
    """Audio staged on local disk for the duration of one request."""
    path: Path
    size_bytes: int = Field(..., gt=0)
    audio_format: str = Field(..., description="Container, from the file extension")
    duration_ms: int = Field(0, ge=0)


class TypedTranscript(AppBaseModel):
    """Transcript typed by the user instead of spoken."""
    text: str = ""

    model_config = {"str_strip_whitespace": False}


TranscriptSource = Union[AudioInput, TypedTranscript]


class ProcessingContext(AppBaseModel):
    shop_id: Optional[int] = Field(None, gt=0)
    slip_id: Optional[int] = Field(None, gt=0)
    user_id: Optional[int] = Field(None, gt=0)


class ProcessingStats(AppResponseModel):
    transcript_chars: int = 0
    transcript_words: int = 0
    candidates: int = Field(0, description="Candidates produced by the extractor")
    items: int = Field(0, description="Candidates that passed normalization")
    rejected: int = 0
    matched: int = Field(0, description="Items matched to a catalog product")
    added: int = Field(0, description="Items that can go on the slip with a rate")
    exact: int = 0
    alias: int = 0
    fuzzy: int = 0
    unmatched: int = 0
    confidence_score: Decimal = Field(Decimal("0"), ge=0, le=100, description="Average match score")
    processing_time_ms: int = 0


class VoiceProcessingResult(AppResponseModel):
    """
    Outcome of one voice (or typed) submission.

    status is "ok" when at least one item was recognized and "no_items"
    otherwise; "no_items" is still a successful response and the caller
    falls back to manual entry.
    """
    status: str = "ok"
    message: Optional[str] = None
    transcript: str = ""
    language_code: str
    items: List[NormalizedItem] = Field(default_factory=list)
    matches: List[MatchResult] = Field(default_factory=list)
    slip_lines: List[SlipLine] = Field(default_factory=list)
    rejected: List[RejectedCandidate] = Field(default_factory=list)
    ambiguities: List[ExtractionAmbiguity] = Field(default_factory=list)
    leftover: str = ""
    stats: ProcessingStats = Field(default_factory=ProcessingStats)

    model_config = {"str_strip_whitespace": False}


class TranscriptRequest(AppBaseModel):
    transcript: str = Field(..., max_length=5000, description="Typed transcript")
    language: str = Field(settings.VOICE_DEFAULT_LANGUAGE, description="Language code, e.g. 'hi' or 'hi-IN'")
    shop_id: Optional[int] = Field(None, gt=0)
    slip_id: Optional[int] = Field(None, gt=0)


class LanguageInfo(AppBaseModel):
    code: str
    name: str
    native_name: str
