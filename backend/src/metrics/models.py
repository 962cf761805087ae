from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.db.main import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


class VoiceMetrics(Base):
    """
    VoiceMetrics model: one immutable row per voice processing attempt.
    Feeds the accuracy analytics used to tune matching thresholds.

    Attributes:
        id: Primary key (auto-incremented)
        audio_file_size: Uploaded audio size in bytes (0 for typed transcripts)
        audio_duration_ms: Audio duration if known
        audio_format: Audio container ('webm', 'wav', ... or 'text')
        language_code: Language code requested by the caller
        raw_transcript: Transcript text
        transcript_chars / transcript_words: Transcript stats
        attempted_extractions: Candidates produced by the extractor
        successful_extractions: Candidates that passed normalization
        items_identified / items_matched_to_products / items_added_to_slip: Pipeline funnel
        exact_matches / alias_matches / fuzzy_matches / unmatched_items: Reconciler tiers
        error_type / error_message: Error tag, null on success
        slip_id / shop_id / created_by: Context identifiers
        success: At least one item and no error
        confidence_score: Average match score (0-100)
        processing_time_ms: End-to-end processing time
        recognized_items: Normalized items (JSON)
        unrecognized_text: Extraction leftover
        product_matching_results: Per-item match outcome (JSON)
        created_at: Timestamp of the attempt (not nullable, server default now())
    """
    __tablename__ = 'voice_metrics'

    __table_args__ = (
        Index('idx_voice_metrics_shop_created', 'shop_id', 'created_at'),
        Index('idx_voice_metrics_error_type', 'error_type'),
        {'comment': 'Append-only voice recognition accuracy metrics'}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    audio_file_size: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    audio_duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    audio_format: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'unknown'"))
    language_code: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'unknown'"))

    raw_transcript: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    transcript_chars: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    transcript_words: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))

    attempted_extractions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    successful_extractions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))

    items_identified: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    items_matched_to_products: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    items_added_to_slip: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    exact_matches: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    alias_matches: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    fuzzy_matches: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))
    unmatched_items: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))

    error_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    slip_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    shop_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text('false'))
    confidence_score: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, server_default=text('0'))
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text('0'))

    recognized_items: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    unrecognized_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product_matching_results: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
