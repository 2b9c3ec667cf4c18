"""
API эндпоинты аналитики скачиваний

Все эндпоинты доступны только на тарифе с функцией analytics.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.auth.dependencies import require_feature
from filedrop.core.database import get_db
from filedrop.models.user import User
from filedrop.schemas.analytics import (
    AnalyticsOverview,
    AnalyticsSummary,
    ComparisonResponse,
    ExportFormat,
    ExportRange,
    HeatmapResponse,
    LiveFeedResponse,
    PeakHourResponse,
    TimeSeriesResponse,
    TrendResponse,
)
from filedrop.services.analytics_service import LIVE_FEED_LIMIT, AnalyticsService
from filedrop.services.export_service import ExportService
from filedrop.services.subscription_service import Feature

router = APIRouter()

analytics_user = require_feature(Feature.ANALYTICS)


@router.get("/timeseries", response_model=TimeSeriesResponse)
async def get_time_series(
    period: str = Query("1d", description="12h, 1d или 1m"),
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> TimeSeriesResponse:
    """График скачиваний за период"""
    return await AnalyticsService(db).get_time_series(current_user.id, period)


@router.get("/heatmap", response_model=HeatmapResponse)
async def get_heatmap(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> HeatmapResponse:
    """Тепловая карта день недели x час за 7 дней"""
    return await AnalyticsService(db).get_heatmap(current_user.id)


@router.get("/comparison", response_model=ComparisonResponse)
async def get_comparison(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> ComparisonResponse:
    return await AnalyticsService(db).get_comparison(current_user.id)


@router.get("/trend", response_model=TrendResponse)
async def get_trend(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> TrendResponse:
    return await AnalyticsService(db).get_trend(current_user.id)


@router.get("/peak-hour", response_model=PeakHourResponse)
async def get_peak_hour(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> PeakHourResponse:
    return await AnalyticsService(db).get_peak_hour(current_user.id)


@router.get("/summary", response_model=AnalyticsSummary)
async def get_summary(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> AnalyticsSummary:
    return await AnalyticsService(db).get_summary(current_user.id)


@router.get("/overview", response_model=AnalyticsOverview)
async def get_overview(
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> AnalyticsOverview:
    return await AnalyticsService(db).get_overview(current_user.id)


@router.get("/feed", response_model=LiveFeedResponse)
async def get_live_feed(
    limit: int = Query(LIVE_FEED_LIMIT, ge=1, le=100),
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> LiveFeedResponse:
    """Лента последних скачиваний"""
    events = await AnalyticsService(db).get_recent_downloads(current_user.id, limit)
    return LiveFeedResponse(events=events)


@router.get("/export")
async def export_analytics(
    fmt: ExportFormat = Query(ExportFormat.CSV, alias="format"),
    date_range: ExportRange = Query(ExportRange.MONTH, alias="range"),
    start: datetime | None = None,
    end: datetime | None = None,
    current_user: User = Depends(analytics_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Выгрузка журнала скачиваний в CSV или JSON"""
    export = await ExportService(db).export(
        current_user.id, fmt=fmt, date_range=date_range, start=start, end=end
    )
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
