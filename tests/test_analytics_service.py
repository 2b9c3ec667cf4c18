"""
Тесты сервиса аналитики и выгрузки поверх журнала скачиваний
"""

import csv
import io
import json
from datetime import UTC, datetime, timedelta

import pytest

from filedrop.exceptions import AnalyticsValidationError, NoExportDataError
from filedrop.models.download_event import AccessMethod
from filedrop.schemas.analytics import ExportFormat, ExportRange, ExportRow
from filedrop.services.analytics_aggregation import TimePeriod
from filedrop.services.analytics_service import (
    AnalyticsService,
    cache_key,
    invalidate_analytics_cache,
)
from filedrop.services.export_service import (
    EXPORT_FIELDS,
    ExportService,
    export_filename,
    resolve_range,
    rows_to_csv,
)
from tests.conftest import create_user
from tests.factories import DownloadEventFactory, FileFactory, SharedLinkFactory

NOW = datetime.now(UTC)


class FakeCache:
    """Кэш в памяти с интерфейсом RedisService"""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, expire=None):
        self.data[key] = value
        return True

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)
        return True


async def add_downloads(db_session, file, *ages: timedelta, **kwargs):
    for age in ages:
        db_session.add(
            DownloadEventFactory(
                file_id=file.id, downloaded_at=NOW - age, **kwargs
            )
        )
    await db_session.commit()


@pytest.mark.asyncio
class TestAnalyticsService:
    async def test_empty_user_views(self, db_session, pro_user):
        service = AnalyticsService(db_session)

        series = await service.get_time_series(pro_user.id, "12h", now=NOW)
        heatmap = await service.get_heatmap(pro_user.id, now=NOW)
        peak = await service.get_peak_hour(pro_user.id, now=NOW)
        summary = await service.get_summary(pro_user.id, now=NOW)

        assert len(series.points) == 12
        assert series.total == 0
        assert len(heatmap.cells) == 168
        assert peak.peak_hour is None
        assert summary.total_downloads == 0
        assert summary.trend == 0.0
        assert summary.last_download_at is None

    async def test_time_series_counts_recent_events(
        self, db_session, pro_user, stored_file
    ):
        await add_downloads(
            db_session,
            stored_file,
            timedelta(minutes=1),
            timedelta(hours=2),
            timedelta(days=3),
        )
        service = AnalyticsService(db_session)

        day = await service.get_time_series(pro_user.id, TimePeriod.DAY, now=NOW)
        month = await service.get_time_series(pro_user.id, TimePeriod.MONTH, now=NOW)

        assert day.total == 2
        assert len(month.points) == 30
        assert month.total == 3

    async def test_invalid_period(self, db_session, pro_user):
        with pytest.raises(AnalyticsValidationError):
            await AnalyticsService(db_session).get_time_series(pro_user.id, "2w")

    async def test_only_own_files_counted(self, db_session, pro_user, stored_file):
        other = await create_user(db_session)
        other_file = FileFactory(user_id=other.id)
        db_session.add(other_file)
        await db_session.commit()
        await add_downloads(db_session, other_file, timedelta(minutes=5))
        await add_downloads(db_session, stored_file, timedelta(minutes=5))

        summary = await AnalyticsService(db_session).get_summary(
            pro_user.id, now=NOW, use_cache=False
        )

        assert summary.total_downloads == 1

    async def test_summary(self, db_session, pro_user, stored_file):
        db_session.add(SharedLinkFactory(file_id=stored_file.id))
        db_session.add(SharedLinkFactory(file_id=stored_file.id, is_active=False))
        await db_session.commit()
        await add_downloads(
            db_session, stored_file, timedelta(minutes=1), timedelta(days=10)
        )

        summary = await AnalyticsService(db_session).get_summary(
            pro_user.id, now=NOW, use_cache=False
        )

        assert summary.total_downloads == 2
        assert summary.active_shares == 1
        assert summary.unique_files == 1
        assert summary.average_per_day == round(1 / 7, 2)
        assert summary.last_download_at is not None

    async def test_comparison_counts_all_links(
        self, db_session, pro_user, stored_file
    ):
        db_session.add(SharedLinkFactory(file_id=stored_file.id))
        db_session.add(SharedLinkFactory(file_id=stored_file.id, is_active=False))
        await db_session.commit()
        await add_downloads(db_session, stored_file, timedelta(hours=1))

        comparison = await AnalyticsService(db_session).get_comparison(
            pro_user.id, now=NOW, use_cache=False
        )

        assert len(comparison.files) == 1
        assert comparison.files[0].downloads == 1
        assert comparison.files[0].shares == 2

    async def test_recent_downloads_newest_first(
        self, db_session, pro_user, stored_file
    ):
        await add_downloads(
            db_session, stored_file, timedelta(hours=3), timedelta(minutes=3)
        )

        feed = await AnalyticsService(db_session).get_recent_downloads(pro_user.id)

        assert len(feed) == 2
        assert feed[0].downloaded_at > feed[1].downloaded_at
        assert feed[0].file_name == "report.pdf"

    async def test_overview(self, db_session, pro_user, stored_file):
        await add_downloads(db_session, stored_file, timedelta(minutes=1))

        overview = await AnalyticsService(db_session).get_overview(pro_user.id)

        assert overview.total_files == 1
        assert overview.total_downloads == 1
        assert overview.popular_files[0].downloads == 1
        assert overview.storage_used == stored_file.file_size
        assert overview.subscription_tier == "pro"

    async def test_cached_view_until_invalidated(
        self, db_session, pro_user, stored_file
    ):
        cache = FakeCache()
        service = AnalyticsService(db_session, cache=cache)

        first = await service.get_summary(pro_user.id, now=NOW)
        assert cache_key(pro_user.id, "summary") in cache.data

        await add_downloads(db_session, stored_file, timedelta(minutes=1))
        cached = await service.get_summary(pro_user.id, now=NOW)
        assert cached.total_downloads == first.total_downloads == 0

        await invalidate_analytics_cache(pro_user.id, cache)
        fresh = await service.get_summary(pro_user.id, now=NOW)
        assert fresh.total_downloads == 1


class TestExportHelpers:
    def test_csv_quotes_every_value(self):
        row = ExportRow(
            file_name='report "final".pdf',
            file_size=10,
            file_type="application/pdf",
            download_method="code",
            downloaded_at="2025-06-15T12:00:00+00:00",
            downloader_ip="N/A",
        )

        content = rows_to_csv([row])

        lines = content.splitlines()
        assert lines[0] == ",".join(f'"{name}"' for name in EXPORT_FIELDS)
        assert '"report ""final"".pdf"' in lines[1]
        parsed = list(csv.DictReader(io.StringIO(content)))
        assert parsed[0]["file_size"] == "10"

    def test_filename(self):
        moment = datetime(2025, 6, 15, 9, 5, 7, tzinfo=UTC)
        assert (
            export_filename(ExportFormat.JSON, moment)
            == "analytics_export_2025-06-15_09-05-07.json"
        )

    def test_week_range(self):
        since, until = resolve_range(ExportRange.WEEK, NOW)
        assert since == NOW - timedelta(days=7)
        assert until is None

    def test_custom_range_requires_start(self):
        with pytest.raises(AnalyticsValidationError):
            resolve_range(ExportRange.CUSTOM, NOW)

    def test_custom_range_start_after_end(self):
        with pytest.raises(AnalyticsValidationError):
            resolve_range(
                ExportRange.CUSTOM, NOW, start=NOW, end=NOW - timedelta(days=1)
            )

    def test_custom_range_mixed_naive_and_aware(self):
        """Границы без часового пояса считаются UTC"""
        start = datetime(2025, 6, 1, 12, 0)
        end = datetime(2025, 6, 2, 12, 0, tzinfo=UTC)

        since, until = resolve_range(ExportRange.CUSTOM, NOW, start=start, end=end)

        assert since == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
        assert until == end

    def test_custom_range_mixed_start_after_end(self):
        with pytest.raises(AnalyticsValidationError):
            resolve_range(
                ExportRange.CUSTOM,
                NOW,
                start=datetime(2025, 6, 3),
                end=datetime(2025, 6, 2, tzinfo=UTC),
            )


@pytest.mark.asyncio
class TestExportService:
    async def test_no_data(self, db_session, pro_user):
        with pytest.raises(NoExportDataError) as exc_info:
            await ExportService(db_session).export(pro_user.id)
        assert exc_info.value.status_code == 404

    async def test_csv_export(self, db_session, pro_user, stored_file):
        await add_downloads(
            db_session,
            stored_file,
            timedelta(days=1),
            timedelta(days=40),
            downloader_ip=None,
        )

        export = await ExportService(db_session).export(
            pro_user.id, ExportFormat.CSV, ExportRange.MONTH
        )

        rows = list(csv.DictReader(io.StringIO(export.content)))
        assert len(rows) == 1
        assert rows[0]["file_name"] == "report.pdf"
        assert rows[0]["downloader_ip"] == "N/A"
        assert export.media_type.startswith("text/csv")
        assert export.filename.endswith(".csv")

    async def test_json_export_all_time(self, db_session, pro_user, stored_file):
        await add_downloads(
            db_session,
            stored_file,
            timedelta(hours=1),
            timedelta(days=400),
            download_method=AccessMethod.CODE.value,
        )

        export = await ExportService(db_session).export(
            pro_user.id, ExportFormat.JSON, ExportRange.ALL
        )

        data = json.loads(export.content)
        assert len(data) == 2
        assert data[0]["downloaded_at"] > data[1]["downloaded_at"]
        assert {item["download_method"] for item in data} == {"code"}

    async def test_custom_range(self, db_session, pro_user, stored_file):
        await add_downloads(
            db_session, stored_file, timedelta(days=2), timedelta(days=5)
        )

        rows = await ExportService(db_session).get_rows(
            pro_user.id,
            ExportRange.CUSTOM,
            start=NOW - timedelta(days=3),
            end=NOW - timedelta(days=1),
        )

        assert len(rows) == 1
