"""
Voice Processing Service.

Orchestrates one voice submission end to end: transcript acquisition,
extraction, normalization, reconciliation and metrics recording.
"""
import asyncio
import logging
import time
from decimal import Decimal
from typing import List, Optional

from src.config import settings
from src.extraction.schemas import ExtractionResult, NormalizedItem
from src.extraction.services import GrammarExtractor, ItemNormalizer
from src.matching.schemas import MatchResult, MatchType
from src.matching.services import ProductReconciler
from src.metrics.schemas import VoiceMetricsCreate
from src.metrics.services import VoiceMetricsRecorder
from src.speech.services import TranscriptAcquirer
from src.voice.exceptions import AcquisitionError, ErrorKind, InputError, VoiceError
from src.voice.languages import validate_language
from src.voice.schemas import (
    AudioInput,
    ProcessingContext,
    ProcessingStats,
    TranscriptSource,
    TypedTranscript,
    VoiceProcessingResult,
)

logger = logging.getLogger(__name__)

NO_ITEMS_MESSAGE = "No items recognized. Please try again or add items manually."


class VoiceProcessingService:
    """
    Service orchestrating the voice pipeline.

    Flow:
    1. Validate language
    2. Acquire transcript (speech service, bounded by a timeout) or take the typed one
    3. Extract candidates and normalize them into items
    4. Reconcile items against the catalog
    5. Dispatch one metrics record (fire-and-forget)

    Cancellation: before the transcript is acquired nothing is recorded; after
    extraction, an "incomplete" record is dispatched and the cancellation
    propagates.
    """

    def __init__(
        self,
        transcriber: TranscriptAcquirer,
        extractor: GrammarExtractor,
        normalizer: ItemNormalizer,
        reconciler: ProductReconciler,
        recorder: VoiceMetricsRecorder,
        default_timeout: float = settings.VOICE_TRANSCRIPTION_TIMEOUT,
    ):
        self.transcriber = transcriber
        self.extractor = extractor
        self.normalizer = normalizer
        self.reconciler = reconciler
        self.recorder = recorder
        self.default_timeout = default_timeout

    async def process_voice_input(
        self,
        source: TranscriptSource,
        language_code: str,
        context: Optional[ProcessingContext] = None,
        timeout: Optional[float] = None,
    ) -> VoiceProcessingResult:
        """
        Runs the pipeline for one submission.

        Raises:
            InputError: Unsupported language or unusable input
            AcquisitionError: Speech service failed or timed out
        """
        started = time.perf_counter()
        context = context or ProcessingContext()
        logger.info(f"Voice processing started: source={type(source).__name__}, language={language_code}")

        try:
            language_code = validate_language(language_code)
            transcript = await self._acquire(source, language_code, timeout or self.default_timeout)
        except VoiceError as e:
            logger.warning(f"Voice processing failed ({e.kind.value}): {e}")
            self._dispatch_metrics(
                source, language_code or "unknown", context, started,
                error_type=e.kind.value, error_message=str(e),
            )
            raise

        extraction = self.extractor.extract(transcript)
        items, rejected = self.normalizer.normalize(extraction.candidates)
        logger.info(
            f"Extraction: {len(extraction.candidates)} candidates, "
            f"{len(items)} items, {len(rejected)} rejected"
        )

        try:
            matches = await self._reconcile(items)
        except asyncio.CancelledError:
            logger.warning("Voice processing cancelled during reconciliation")
            self._dispatch_metrics(
                source, language_code, context, started,
                transcript=transcript, extraction=extraction, items=items,
                error_type=ErrorKind.INCOMPLETE.value,
                error_message="Cancelled before reconciliation completed",
            )
            raise

        stats = self._stats(transcript, extraction, items, rejected, matches, started)
        result = VoiceProcessingResult(
            status="ok" if items else "no_items",
            message=None if items else NO_ITEMS_MESSAGE,
            transcript=transcript,
            language_code=language_code,
            items=items,
            matches=matches,
            slip_lines=[match.to_slip_line() for match in matches],
            rejected=rejected,
            ambiguities=extraction.ambiguities,
            leftover=extraction.leftover,
            stats=stats,
        )

        self._dispatch_metrics(
            source, language_code, context, started,
            transcript=transcript, extraction=extraction, items=items, matches=matches, stats=stats,
        )
        logger.info(
            f"Voice processing completed: status={result.status}, items={stats.items}, "
            f"matched={stats.matched}, time={stats.processing_time_ms}ms"
        )
        return result

    async def _acquire(self, source: TranscriptSource, language_code: str, timeout: float) -> str:
        if isinstance(source, TypedTranscript):
            return source.text
        if not isinstance(source, AudioInput):
            raise InputError("Unsupported transcript source")

        try:
            transcript = await asyncio.wait_for(
                self.transcriber.transcribe(source.path, language_code),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise AcquisitionError(f"Speech service timed out after {timeout:g}s", retryable=True) from e
        except VoiceError:
            raise
        except Exception as e:
            logger.error(f"Speech service failed: {e}", exc_info=True)
            raise AcquisitionError(f"Speech service error: {e}", retryable=False) from e

        return transcript or ""

    async def _reconcile(self, items: List[NormalizedItem]) -> List[MatchResult]:
        try:
            return await self.reconciler.reconcile(items)
        except Exception as e:
            # The reconciler isolates catalog failures per item; anything else
            # still must not cost the caller the extracted items.
            logger.error(f"Reconciliation failed: {e}", exc_info=True)
            return [
                MatchResult(
                    item=item,
                    match_type=MatchType.NONE,
                    needs_price=item.rate is None,
                    error=ErrorKind.RECONCILIATION_DATA.value,
                )
                for item in items
            ]

    @staticmethod
    def _stats(
        transcript: str,
        extraction: ExtractionResult,
        items: List[NormalizedItem],
        rejected: list,
        matches: List[MatchResult],
        started: float,
    ) -> ProcessingStats:
        scores = [match.match_score for match in matches]
        confidence = (
            (Decimal(sum(scores)) / Decimal(len(scores))).quantize(Decimal("0.01"))
            if scores else Decimal("0.00")
        )
        return ProcessingStats(
            transcript_chars=len(transcript),
            transcript_words=len(transcript.split()),
            candidates=len(extraction.candidates),
            items=len(items),
            rejected=len(rejected),
            matched=sum(1 for match in matches if match.is_matched),
            added=sum(1 for match in matches if match.to_slip_line().rate is not None),
            exact=sum(1 for match in matches if match.match_type == MatchType.EXACT),
            alias=sum(1 for match in matches if match.match_type == MatchType.ALIAS),
            fuzzy=sum(1 for match in matches if match.match_type == MatchType.FUZZY),
            unmatched=sum(1 for match in matches if match.match_type == MatchType.NONE),
            confidence_score=confidence,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )

    def _dispatch_metrics(
        self,
        source: TranscriptSource,
        language_code: str,
        context: ProcessingContext,
        started: float,
        transcript: str = "",
        extraction: Optional[ExtractionResult] = None,
        items: Optional[List[NormalizedItem]] = None,
        matches: Optional[List[MatchResult]] = None,
        stats: Optional[ProcessingStats] = None,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        items = items or []
        matches = matches or []
        try:
            audio = source if isinstance(source, AudioInput) else None
            record = VoiceMetricsCreate(
                audio_file_size=audio.size_bytes if audio else 0,
                audio_duration_ms=audio.duration_ms if audio else 0,
                audio_format=audio.audio_format if audio else "text",
                language_code=language_code,
                raw_transcript=transcript,
                transcript_chars=len(transcript),
                transcript_words=len(transcript.split()),
                attempted_extractions=len(extraction.candidates) if extraction else 0,
                successful_extractions=len(items),
                items_identified=len(items),
                items_matched_to_products=stats.matched if stats else 0,
                items_added_to_slip=stats.added if stats else 0,
                exact_matches=stats.exact if stats else 0,
                alias_matches=stats.alias if stats else 0,
                fuzzy_matches=stats.fuzzy if stats else 0,
                unmatched_items=stats.unmatched if stats else 0,
                error_type=error_type,
                error_message=error_message,
                slip_id=context.slip_id,
                shop_id=context.shop_id,
                created_by=context.user_id,
                success=bool(items) and error_type is None,
                confidence_score=stats.confidence_score if stats else Decimal("0"),
                processing_time_ms=int((time.perf_counter() - started) * 1000),
                recognized_items=[item.model_dump(mode="json") for item in items],
                unrecognized_text=(extraction.leftover or None) if extraction else None,
                product_matching_results=[
                    {
                        "name": match.item.name,
                        "product_id": match.product_id,
                        "match_type": match.match_type.value,
                        "match_score": match.match_score,
                        "error": match.error,
                    }
                    for match in matches
                ],
            )
            self.recorder.dispatch(record)
        except Exception as e:
            logger.warning(f"Voice metrics dispatch failed: {e}", exc_info=True)
