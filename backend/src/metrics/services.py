"""
Voice metrics: fire-and-forget recording and accuracy analytics.
"""
import asyncio
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Set

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.main import AsyncSessionLocal
from src.metrics.exceptions import InvalidDateRangeError
from src.metrics.models import VoiceMetrics
from src.metrics.schemas import (
    ErrorBreakdown,
    MatchBreakdown,
    Timeframe,
    VoiceAnalyticsFilters,
    VoiceAnalyticsResponse,
    VoiceAnalyticsSummary,
    VoiceMetricsCreate,
)
from src.voice.exceptions import PersistenceWarning

logger = logging.getLogger(__name__)


class VoiceMetricsRecorder:
    """
    Writes one VoiceMetrics row per attempt.

    Writes use their own session, so a metrics outage never touches the
    request's session. Failures are logged as PersistenceWarning and
    swallowed.
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    async def record(self, data: VoiceMetricsCreate) -> Optional[int]:
        """Persists one record; returns its id, or None if the write failed."""
        try:
            async with self.session_factory() as session:
                row = VoiceMetrics(**data.model_dump())
                session.add(row)
                await session.commit()
                logger.info(
                    f"Voice metrics recorded: id={row.id}, success={data.success}, "
                    f"items={data.items_identified}, error={data.error_type}"
                )
                return row.id
        except Exception as e:
            warning = PersistenceWarning(f"Voice metrics write failed: {e}")
            logger.warning(str(warning), exc_info=True)
            return None

    def dispatch(self, data: VoiceMetricsCreate) -> asyncio.Task:
        """Schedules record() without waiting for it."""
        task = asyncio.create_task(self.record(data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_pending(self) -> None:
        """Waits for every dispatched write (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))


class VoiceAnalyticsService:
    """
    Aggregates voice metrics for accuracy analytics.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_voice_analytics(self, filters: VoiceAnalyticsFilters) -> VoiceAnalyticsResponse:
        """
        Summary, error breakdown and timeframe for the filtered attempts.

        Raises:
            InvalidDateRangeError: If start_date is after end_date
        """
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise InvalidDateRangeError()

        logger.info(
            f"Generating voice analytics: shop_id={filters.shop_id}, "
            f"from={filters.start_date}, to={filters.end_date}"
        )
        conditions = self._conditions(filters)

        summary_stmt = select(
            func.count(VoiceMetrics.id).label("total_attempts"),
            func.coalesce(func.sum(case((VoiceMetrics.success.is_(True), 1), else_=0)), 0).label("successful_attempts"),
            func.avg(VoiceMetrics.confidence_score).label("avg_confidence"),
            func.avg(VoiceMetrics.processing_time_ms).label("avg_processing_ms"),
            func.coalesce(func.sum(VoiceMetrics.items_identified), 0).label("items_identified"),
            func.coalesce(func.sum(VoiceMetrics.items_matched_to_products), 0).label("items_matched"),
            func.coalesce(func.sum(VoiceMetrics.items_added_to_slip), 0).label("items_added"),
            func.coalesce(func.sum(VoiceMetrics.exact_matches), 0).label("exact"),
            func.coalesce(func.sum(VoiceMetrics.alias_matches), 0).label("alias"),
            func.coalesce(func.sum(VoiceMetrics.fuzzy_matches), 0).label("fuzzy"),
            func.coalesce(func.sum(VoiceMetrics.unmatched_items), 0).label("unmatched"),
            func.count(func.distinct(VoiceMetrics.error_type)).label("unique_error_types"),
        ).where(*conditions)
        row = (await self.session.execute(summary_stmt)).one()

        total_attempts = int(row.total_attempts or 0)
        items_identified = int(row.items_identified)
        avg_processing_ms = _to_decimal(row.avg_processing_ms)

        summary = VoiceAnalyticsSummary(
            total_attempts=total_attempts,
            successful_attempts=int(row.successful_attempts),
            success_rate=self._calculate_rate(int(row.successful_attempts), total_attempts),
            avg_confidence=_to_decimal(row.avg_confidence),
            avg_processing_seconds=_to_decimal(avg_processing_ms / 1000) if avg_processing_ms is not None else None,
            total_items_identified=items_identified,
            total_items_matched=int(row.items_matched),
            total_items_added=int(row.items_added),
            # Item-level rates come from summed item counts, not attempt counts
            product_match_rate=self._calculate_rate(int(row.items_matched), items_identified),
            slip_addition_rate=self._calculate_rate(int(row.items_added), items_identified),
            unique_error_types=int(row.unique_error_types or 0),
            match_breakdown=MatchBreakdown(
                exact=int(row.exact),
                alias=int(row.alias),
                fuzzy=int(row.fuzzy),
                none=int(row.unmatched),
            ),
        )

        errors = await self._error_breakdown(conditions, total_attempts)

        return VoiceAnalyticsResponse(
            summary=summary,
            errors=errors,
            timeframe=Timeframe(
                from_=filters.start_date.isoformat() if filters.start_date else "all time",
                to=filters.end_date.isoformat() if filters.end_date else "present",
            ),
        )

    async def _error_breakdown(self, conditions: List[Any], total_attempts: int) -> List[ErrorBreakdown]:
        if total_attempts == 0:
            return []

        error_count = func.count(VoiceMetrics.id)
        stmt = (
            select(VoiceMetrics.error_type, error_count.label("count"))
            .where(*conditions, VoiceMetrics.error_type.isnot(None))
            .group_by(VoiceMetrics.error_type)
            .order_by(error_count.desc(), VoiceMetrics.error_type)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            ErrorBreakdown(
                type=row.error_type,
                count=int(row.count),
                percentage=self._calculate_rate(int(row.count), total_attempts) or Decimal("0.00"),
            )
            for row in rows
        ]

    @staticmethod
    def _conditions(filters: VoiceAnalyticsFilters) -> List[Any]:
        conditions = []
        if filters.shop_id is not None:
            conditions.append(VoiceMetrics.shop_id == filters.shop_id)
        if filters.start_date is not None:
            conditions.append(VoiceMetrics.created_at >= datetime.combine(filters.start_date, time.min))
        if filters.end_date is not None:
            # end_date covers its whole day
            conditions.append(VoiceMetrics.created_at < datetime.combine(filters.end_date + timedelta(days=1), time.min))
        return conditions

    @staticmethod
    def _calculate_rate(part: int, total: int) -> Optional[Decimal]:
        """
        Percentage of part relative to total, or None when total is zero.
        """
        if not total:
            return None
        return (Decimal(part) / Decimal(total) * Decimal("100.00")).quantize(Decimal("0.01"))
