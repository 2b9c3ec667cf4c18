"""
Сервис аналитики скачиваний.

Все представления пересчитываются из журнала download_logs, а не из
денормализованных счётчиков.
"""

import time
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import desc, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.config import settings
from filedrop.core.redis import RedisService, redis_service
from filedrop.logging.analytics import analytics_logger
from filedrop.models.download_event import DownloadEvent
from filedrop.models.file import File
from filedrop.models.share_link import SharedLink
from filedrop.models.user import Profile
from filedrop.schemas.analytics import (
    AnalyticsOverview,
    AnalyticsSummary,
    ComparisonResponse,
    HeatmapResponse,
    PeakHourResponse,
    PopularFile,
    RecentDownload,
    TimeSeriesPointResponse,
    TimeSeriesResponse,
    TrendResponse,
)
from filedrop.services.analytics_aggregation import (
    COMPARISON_WINDOW_DAYS,
    HEATMAP_DAYS,
    FileActivity,
    TimePeriod,
    build_comparison,
    build_heatmap,
    build_time_series,
    calculate_trend,
    count_today_yesterday,
    find_peak_hour,
    parse_period,
    percent_change,
    period_start,
)

RECENT_DOWNLOADS_LIMIT = 8
POPULAR_FILES_LIMIT = 5
LIVE_FEED_LIMIT = 20
SLOW_AGGREGATION_MS = 1000

CACHED_VIEWS = ("summary", "heatmap", "comparison") + tuple(
    f"timeseries:{p.value}" for p in TimePeriod
)


def cache_key(user_id: UUID | str, view: str) -> str:
    return f"analytics:{user_id}:{view}"


async def invalidate_analytics_cache(
    user_id: UUID | str, cache: RedisService | None = None
) -> None:
    """Сбросить кэш всех представлений владельца после нового скачивания"""
    cache = cache or redis_service
    await cache.delete(*(cache_key(user_id, view) for view in CACHED_VIEWS))


class AnalyticsService:
    """Сервис для расчёта представлений аналитики владельца файлов"""

    def __init__(
        self, db: AsyncSession, cache: RedisService | None = None
    ) -> None:
        self.db = db
        self.cache = cache or redis_service

    # === Загрузка данных ===

    async def _event_times(
        self, user_id: UUID, since: datetime | None = None
    ) -> list[datetime]:
        query = (
            select(DownloadEvent.downloaded_at)
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id)
        )
        if since is not None:
            query = query.where(DownloadEvent.downloaded_at >= since)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _cached(self, user_id: UUID, view: str, schema, use_cache: bool):
        if not use_cache:
            return None
        key = cache_key(user_id, view)
        cached = await self.cache.get(key)
        if cached is None:
            analytics_logger.log_cache_miss(key, view)
            return None
        analytics_logger.log_cache_hit(key, view)
        return schema.model_validate(cached)

    async def _store(self, user_id: UUID, view: str, value) -> None:
        await self.cache.set(
            cache_key(user_id, view),
            value.model_dump(mode="json"),
            expire=settings.ANALYTICS_CACHE_TTL,
        )

    def _log_timing(
        self, metric: str, user_id: UUID, period: str, started: float
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        analytics_logger.log_metrics_calculation(metric, user_id, period, duration_ms)
        if duration_ms > SLOW_AGGREGATION_MS:
            analytics_logger.log_performance_warning(metric, duration_ms)

    # === Представления ===

    async def get_time_series(
        self,
        user_id: UUID,
        period: str | TimePeriod = TimePeriod.DAY,
        now: datetime | None = None,
        use_cache: bool = True,
    ) -> TimeSeriesResponse:
        """График скачиваний за 12 часов, сутки или месяц"""
        period = parse_period(period)
        view = f"timeseries:{period.value}"
        cached = await self._cached(user_id, view, TimeSeriesResponse, use_cache)
        if cached is not None:
            return cached

        started = time.perf_counter()
        now = now or datetime.now(UTC)
        times = await self._event_times(user_id, since=period_start(period, now))
        points = build_time_series(times, period, now)

        response = TimeSeriesResponse(
            period=period,
            points=[TimeSeriesPointResponse.model_validate(p) for p in points],
            total=sum(p.count for p in points),
            percent_change=percent_change(points),
        )
        self._log_timing("timeseries", user_id, period.value, started)
        if use_cache:
            await self._store(user_id, view, response)
        return response

    async def get_heatmap(
        self, user_id: UUID, now: datetime | None = None, use_cache: bool = True
    ) -> HeatmapResponse:
        """Тепловая карта (день недели x час) за последние 7 дней"""
        cached = await self._cached(user_id, "heatmap", HeatmapResponse, use_cache)
        if cached is not None:
            return cached

        started = time.perf_counter()
        now = now or datetime.now(UTC)
        times = await self._event_times(
            user_id, since=now - timedelta(days=HEATMAP_DAYS)
        )
        response = HeatmapResponse.model_validate(
            build_heatmap(times, now), from_attributes=True
        )
        self._log_timing("heatmap", user_id, "7d", started)
        if use_cache:
            await self._store(user_id, "heatmap", response)
        return response

    async def get_comparison(
        self, user_id: UUID, now: datetime | None = None, use_cache: bool = True
    ) -> ComparisonResponse:
        """Сравнение файлов владельца: скачивания за 7 дней и число ссылок"""
        cached = await self._cached(
            user_id, "comparison", ComparisonResponse, use_cache
        )
        if cached is not None:
            return cached

        started = time.perf_counter()
        now = now or datetime.now(UTC)
        since = now - timedelta(days=COMPARISON_WINDOW_DAYS)

        files_result = await self.db.execute(
            select(File.id, File.original_name).where(File.user_id == user_id)
        )
        activities = {
            file_id: FileActivity(file_id=file_id, file_name=name)
            for file_id, name in files_result.all()
        }

        if activities:
            events_result = await self.db.execute(
                select(DownloadEvent.file_id, DownloadEvent.downloaded_at).where(
                    DownloadEvent.file_id.in_(activities.keys()),
                    DownloadEvent.downloaded_at >= since,
                )
            )
            for file_id, downloaded_at in events_result.all():
                activities[file_id].download_times.append(downloaded_at)

            # Все ссылки за всё время, включая деактивированные
            shares_result = await self.db.execute(
                select(SharedLink.file_id, func.count(SharedLink.id))
                .where(SharedLink.file_id.in_(activities.keys()))
                .group_by(SharedLink.file_id)
            )
            for file_id, count in shares_result.all():
                activities[file_id].share_count = count

        response = ComparisonResponse.model_validate(
            build_comparison(activities.values(), now), from_attributes=True
        )
        self._log_timing("comparison", user_id, "7d", started)
        if use_cache:
            await self._store(user_id, "comparison", response)
        return response

    async def get_trend(
        self, user_id: UUID, now: datetime | None = None
    ) -> TrendResponse:
        """Изменение скачиваний сегодня относительно вчера (UTC)"""
        now = now or datetime.now(UTC)
        day_start = now.astimezone(UTC).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        times = await self._event_times(user_id, since=day_start - timedelta(days=1))
        today, yesterday = count_today_yesterday(times, now)
        return TrendResponse(
            today=today, yesterday=yesterday, trend=calculate_trend(today, yesterday)
        )

    async def get_peak_hour(
        self, user_id: UUID, now: datetime | None = None
    ) -> PeakHourResponse:
        now = now or datetime.now(UTC)
        times = await self._event_times(
            user_id, since=now - timedelta(days=HEATMAP_DAYS)
        )
        peak = find_peak_hour(times, now)
        downloads = 0
        if peak is not None:
            window_start = now - timedelta(days=HEATMAP_DAYS)
            downloads = sum(
                1 for ts in times if ts.hour == peak and window_start < ts <= now
            )
        return PeakHourResponse(peak_hour=peak, downloads=downloads)

    async def get_summary(
        self, user_id: UUID, now: datetime | None = None, use_cache: bool = True
    ) -> AnalyticsSummary:
        """Краткая сводка: сегодня, тренд, час пик, среднее и активные ссылки"""
        cached = await self._cached(user_id, "summary", AnalyticsSummary, use_cache)
        if cached is not None:
            return cached

        started = time.perf_counter()
        now = now or datetime.now(UTC)
        week_ago = now - timedelta(days=HEATMAP_DAYS)

        total_result = await self.db.execute(
            select(func.count(DownloadEvent.id), func.max(DownloadEvent.downloaded_at))
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id)
        )
        total, last_download_at = total_result.one()

        times = await self._event_times(user_id, since=week_ago)
        today, yesterday = count_today_yesterday(times, now)
        week_count = sum(1 for ts in times if week_ago < ts <= now)

        unique_result = await self.db.execute(
            select(func.count(distinct(DownloadEvent.file_id)))
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id, DownloadEvent.downloaded_at > week_ago)
        )
        active_result = await self.db.execute(
            select(func.count(SharedLink.id))
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == user_id, SharedLink.is_active == True)
        )

        response = AnalyticsSummary(
            total_downloads=total or 0,
            today_downloads=today,
            yesterday_downloads=yesterday,
            trend=calculate_trend(today, yesterday),
            peak_hour=find_peak_hour(times, now),
            average_per_day=round(week_count / HEATMAP_DAYS, 2),
            unique_files=unique_result.scalar() or 0,
            active_shares=active_result.scalar() or 0,
            last_download_at=last_download_at,
        )
        self._log_timing("summary", user_id, "7d", started)
        if use_cache:
            await self._store(user_id, "summary", response)
        return response

    async def get_recent_downloads(
        self, user_id: UUID, limit: int = LIVE_FEED_LIMIT
    ) -> list[RecentDownload]:
        """Последние скачивания файлов владельца, новые первыми"""
        result = await self.db.execute(
            select(DownloadEvent, File.original_name)
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id)
            .order_by(desc(DownloadEvent.downloaded_at))
            .limit(limit)
        )
        return [
            RecentDownload(
                id=event.id,
                file_id=event.file_id,
                file_name=file_name,
                download_method=event.download_method,
                downloaded_at=event.downloaded_at,
                downloader_ip=event.downloader_ip,
            )
            for event, file_name in result.all()
        ]

    async def get_popular_files(
        self, user_id: UUID, limit: int = POPULAR_FILES_LIMIT
    ) -> list[PopularFile]:
        downloads = func.count(DownloadEvent.id).label("downloads")
        result = await self.db.execute(
            select(File.id, File.original_name, downloads)
            .join(DownloadEvent, DownloadEvent.file_id == File.id)
            .where(File.user_id == user_id)
            .group_by(File.id, File.original_name)
            .order_by(desc(downloads), File.original_name)
            .limit(limit)
        )
        return [
            PopularFile(file_id=file_id, file_name=name, downloads=count)
            for file_id, name, count in result.all()
        ]

    async def get_overview(self, user_id: UUID) -> AnalyticsOverview:
        """Общая картина: файлы, ссылки, скачивания, хранилище"""
        files_result = await self.db.execute(
            select(func.count(File.id)).where(File.user_id == user_id)
        )
        shares_result = await self.db.execute(
            select(func.count(SharedLink.id))
            .join(File, File.id == SharedLink.file_id)
            .where(File.user_id == user_id)
        )
        downloads_result = await self.db.execute(
            select(func.count(DownloadEvent.id))
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id)
        )
        profile = await self.db.get(Profile, user_id)

        overview = AnalyticsOverview(
            total_files=files_result.scalar() or 0,
            total_shares=shares_result.scalar() or 0,
            total_downloads=downloads_result.scalar() or 0,
            recent_downloads=await self.get_recent_downloads(
                user_id, RECENT_DOWNLOADS_LIMIT
            ),
            popular_files=await self.get_popular_files(user_id),
            storage_used=profile.storage_used if profile else 0,
            storage_limit=profile.storage_limit if profile else None,
            subscription_tier=profile.tier.value if profile else "free",
        )
        analytics_logger.log_data_access(user_id, "overview", overview.total_downloads)
        return overview
