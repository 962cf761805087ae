"""
Pydantic schemas for voice metrics and accuracy analytics.

Input schemas use strict=True (via AppBaseModel) to prevent implicit type coercion;
response schemas derive from AppResponseModel.
"""
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional
from pydantic import Field

from src.common.schemas import AppBaseModel, AppResponseModel


class VoiceMetricsCreate(AppBaseModel):
    """One processing attempt, as written by the recorder."""
    audio_file_size: int = Field(0, ge=0)
    audio_duration_ms: int = Field(0, ge=0)
    audio_format: str = "unknown"
    language_code: str = "unknown"

    raw_transcript: str = ""
    transcript_chars: int = Field(0, ge=0)
    transcript_words: int = Field(0, ge=0)

    attempted_extractions: int = Field(0, ge=0)
    successful_extractions: int = Field(0, ge=0)

    items_identified: int = Field(0, ge=0)
    items_matched_to_products: int = Field(0, ge=0)
    items_added_to_slip: int = Field(0, ge=0)
    exact_matches: int = Field(0, ge=0)
    alias_matches: int = Field(0, ge=0)
    fuzzy_matches: int = Field(0, ge=0)
    unmatched_items: int = Field(0, ge=0)

    error_type: Optional[str] = None
    error_message: Optional[str] = None

    slip_id: Optional[int] = None
    shop_id: Optional[int] = None
    created_by: Optional[int] = None

    success: bool = False
    confidence_score: Decimal = Field(Decimal("0"), ge=0, le=100)
    processing_time_ms: int = Field(0, ge=0)

    recognized_items: Optional[List[Any]] = None
    unrecognized_text: Optional[str] = None
    product_matching_results: Optional[List[Any]] = None

    model_config = {"str_strip_whitespace": False}


class VoiceAnalyticsFilters(AppBaseModel):
    shop_id: Optional[int] = Field(None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = Field(None, description="Inclusive: the whole day is counted")


class MatchBreakdown(AppResponseModel):
    exact: int = Field(0, ge=0)
    alias: int = Field(0, ge=0)
    fuzzy: int = Field(0, ge=0)
    none: int = Field(0, ge=0)


class VoiceAnalyticsSummary(AppResponseModel):
    """
    Aggregates over the filtered attempts. Rates are percentages (0-100)
    computed from summed item counts; they are null when there is nothing
    to divide by.
    """
    total_attempts: int = Field(..., ge=0)
    successful_attempts: int = Field(..., ge=0)
    success_rate: Optional[Decimal] = None
    avg_confidence: Optional[Decimal] = None
    avg_processing_seconds: Optional[Decimal] = None
    total_items_identified: int = Field(0, ge=0)
    total_items_matched: int = Field(0, ge=0)
    total_items_added: int = Field(0, ge=0)
    product_match_rate: Optional[Decimal] = None
    slip_addition_rate: Optional[Decimal] = None
    unique_error_types: int = Field(0, ge=0)
    match_breakdown: MatchBreakdown = Field(default_factory=MatchBreakdown)


class ErrorBreakdown(AppResponseModel):
    type: str
    count: int = Field(..., ge=0)
    percentage: Decimal = Field(..., ge=0, le=100)


class Timeframe(AppResponseModel):
    from_: str = Field(..., alias="from")
    to: str

    model_config = {"populate_by_name": True}


class VoiceAnalyticsResponse(AppResponseModel):
    summary: VoiceAnalyticsSummary
    errors: List[ErrorBreakdown] = Field(default_factory=list)
    timeframe: Timeframe
