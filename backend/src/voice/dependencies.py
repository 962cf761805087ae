"""
Factory functions for the voice pipeline.

Every collaborator is constructed here and injected, so tests can override
any of them through app.dependency_overrides.
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.catalog.services import CatalogService
from src.db.main import get_session
from src.extraction.services import GrammarExtractor, ItemNormalizer
from src.matching.services import ProductReconciler
from src.matching.similarity import RatioScorer
from src.metrics.services import VoiceMetricsRecorder
from src.speech.dependencies import get_transcription_service
from src.speech.services import TranscriptAcquirer
from src.voice.services import VoiceProcessingService

# Shared across requests so pending metric writes can be drained on shutdown
metrics_recorder = VoiceMetricsRecorder()
grammar_extractor = GrammarExtractor()


def get_metrics_recorder() -> VoiceMetricsRecorder:
    return metrics_recorder


def get_grammar_extractor() -> GrammarExtractor:
    return grammar_extractor


async def get_voice_processing_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    transcriber: Annotated[TranscriptAcquirer, Depends(get_transcription_service)],
    recorder: Annotated[VoiceMetricsRecorder, Depends(get_metrics_recorder)],
    extractor: Annotated[GrammarExtractor, Depends(get_grammar_extractor)],
) -> VoiceProcessingService:
    scorer = RatioScorer()
    return VoiceProcessingService(
        transcriber=transcriber,
        extractor=extractor,
        normalizer=ItemNormalizer(),
        reconciler=ProductReconciler(CatalogService(session, scorer), scorer=scorer),
        recorder=recorder,
    )


VoiceProcessingServiceDependency = Annotated[
    VoiceProcessingService,
    Depends(get_voice_processing_service)
]
