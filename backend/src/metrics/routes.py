"""
HTTP routes for voice accuracy analytics.
"""
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.main import get_session
from src.metrics.schemas import VoiceAnalyticsFilters, VoiceAnalyticsResponse
from src.metrics.services import VoiceAnalyticsService

router = APIRouter()


async def get_voice_analytics_service(session: Annotated[AsyncSession, Depends(get_session)]) -> VoiceAnalyticsService:
    return VoiceAnalyticsService(session)


ServiceDependency = Annotated[VoiceAnalyticsService, Depends(get_voice_analytics_service)]


@router.get(
    "/voice",
    response_model=VoiceAnalyticsResponse,
    status_code=status.HTTP_200_OK,
    summary="Get voice recognition accuracy analytics",
    description="Aggregates voice processing attempts: success and match rates, average confidence and processing time, and an error breakdown."
)
async def get_voice_analytics(
    service: ServiceDependency,
    shop_id: Optional[int] = Query(None, gt=0, description="Only attempts for this shop"),
    start_date: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Last day, inclusive (YYYY-MM-DD)"),
) -> VoiceAnalyticsResponse:
    """
    **Response:**
    - Success (200): Summary, error breakdown and timeframe
    - Error (400): start_date after end_date
    """
    filters = VoiceAnalyticsFilters(shop_id=shop_id, start_date=start_date, end_date=end_date)
    return await service.get_voice_analytics(filters)
