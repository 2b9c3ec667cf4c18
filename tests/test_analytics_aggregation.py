"""
Тесты чистых функций агрегации аналитики
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from filedrop.exceptions import AnalyticsValidationError
from filedrop.services.analytics_aggregation import (
    FileActivity,
    TimePeriod,
    build_comparison,
    build_heatmap,
    build_time_series,
    calculate_trend,
    count_today_yesterday,
    day_of_week,
    find_peak_hour,
    intensity_tier,
    parse_period,
    percent_change,
    period_start,
)

# Воскресенье
NOW = datetime(2025, 6, 15, 14, 30, tzinfo=UTC)

recent_times = st.lists(
    st.integers(min_value=0, max_value=7 * 24 * 3600 - 1).map(
        lambda seconds: NOW - timedelta(seconds=seconds)
    ),
    max_size=200,
)


class TestTrend:
    @pytest.mark.parametrize(
        ("today", "yesterday", "expected"),
        [(0, 0, 0.0), (3, 0, 100.0), (1, 2, -50.0), (4, 2, 100.0), (5, 5, 0.0)],
    )
    def test_calculate_trend(self, today, yesterday, expected):
        assert calculate_trend(today, yesterday) == expected

    def test_count_today_yesterday_uses_utc_days(self):
        times = [
            NOW.replace(hour=0, minute=0),
            NOW - timedelta(days=1),
            NOW.replace(hour=0, minute=0) - timedelta(seconds=1),
            NOW - timedelta(days=2),
        ]
        assert count_today_yesterday(times, NOW) == (1, 2)

    def test_percent_change_halves(self):
        series = build_time_series(
            [NOW - timedelta(hours=20), NOW, NOW - timedelta(minutes=5)],
            TimePeriod.DAY,
            NOW,
        )
        assert percent_change(series) == 100.0

    def test_percent_change_short_series(self):
        assert percent_change([]) == 0.0


class TestTimeSeries:
    @pytest.mark.parametrize(
        ("period", "length"),
        [(TimePeriod.HOURS_12, 12), (TimePeriod.DAY, 24), (TimePeriod.MONTH, 30)],
    )
    def test_series_length_without_data(self, period, length):
        points = build_time_series([], period, NOW)
        assert len(points) == length
        assert all(p.count == 0 for p in points)

    def test_last_point_is_current_hour(self):
        points = build_time_series([NOW], TimePeriod.HOURS_12, NOW)
        assert points[-1].start == NOW.replace(minute=0)
        assert points[-1].count == 1
        assert points[-1].label == "14:00"

    def test_oldest_point_first(self):
        points = build_time_series([], TimePeriod.MONTH, NOW)
        assert points[0].start == datetime(2025, 5, 17, tzinfo=UTC)
        assert points[0].label == "May 17"
        assert points[-1].start == datetime(2025, 6, 15, tzinfo=UTC)

    def test_events_outside_window_ignored(self):
        times = [NOW - timedelta(hours=13), NOW + timedelta(hours=2)]
        points = build_time_series(times, TimePeriod.HOURS_12, NOW)
        assert sum(p.count for p in points) == 0

    @given(times=recent_times)
    def test_month_series_counts_everything_in_window(self, times):
        points = build_time_series(times, TimePeriod.MONTH, NOW)
        assert sum(p.count for p in points) == len(times)

    def test_naive_timestamps_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        points = build_time_series([naive], TimePeriod.DAY, NOW)
        assert points[-1].count == 1

    def test_period_start(self):
        assert period_start("12h", NOW) == datetime(2025, 6, 15, 3, tzinfo=UTC)

    @pytest.mark.parametrize("period", ["7d", "", "1M", "week"])
    def test_unknown_period(self, period):
        with pytest.raises(AnalyticsValidationError) as exc_info:
            parse_period(period)
        assert exc_info.value.field == "period"


class TestHeatmap:
    def test_empty_heatmap_has_all_cells(self):
        heatmap = build_heatmap([], NOW)
        assert len(heatmap.cells) == 168
        assert all(cell.count == 0 and cell.intensity == 0 for cell in heatmap.cells)
        assert heatmap.max_count == 0
        assert heatmap.total == 0

    @given(times=recent_times)
    def test_cells_sum_to_total(self, times):
        heatmap = build_heatmap(times, NOW)
        assert len(heatmap.cells) == 168
        assert sum(cell.count for cell in heatmap.cells) == heatmap.total == len(times)

    def test_cell_position(self):
        heatmap = build_heatmap([NOW, NOW - timedelta(minutes=10)], NOW)
        cell = next(c for c in heatmap.cells if c.count)
        assert (cell.day, cell.hour) == (0, 14)
        assert cell.intensity == 4

    def test_window_excludes_week_old_events(self):
        heatmap = build_heatmap([NOW - timedelta(days=7)], NOW)
        assert heatmap.total == 0

    @pytest.mark.parametrize(
        ("count", "max_count", "tier"),
        [(0, 10, 0), (1, 10, 1), (3, 10, 2), (5, 10, 3), (8, 10, 4), (10, 10, 4)],
    )
    def test_intensity_tiers(self, count, max_count, tier):
        assert intensity_tier(count, max_count) == tier

    def test_day_of_week_sunday_first(self):
        assert day_of_week(NOW) == 0
        assert day_of_week(NOW + timedelta(days=1)) == 1
        assert day_of_week(NOW - timedelta(days=1)) == 6


class TestPeakHour:
    def test_no_downloads(self):
        assert find_peak_hour([], NOW) is None

    def test_busiest_hour(self):
        times = [NOW.replace(hour=9), NOW.replace(hour=9), NOW.replace(hour=11)]
        assert find_peak_hour(times, NOW) == 9

    def test_tie_goes_to_earlier_hour(self):
        times = [NOW.replace(hour=13), NOW.replace(hour=2)]
        assert find_peak_hour(times, NOW) == 2


class TestComparison:
    def test_top_six_by_recent_downloads(self):
        files = [
            FileActivity(
                file_id=uuid4(),
                file_name=f"file_{i}.txt",
                download_times=[NOW - timedelta(hours=1)] * i,
                share_count=1,
            )
            for i in range(8)
        ]

        comparison = build_comparison(files, NOW)

        assert [row.downloads for row in comparison.files] == [7, 6, 5, 4, 3, 2]
        assert comparison.total_downloads == 27
        assert comparison.total_shares == 6
        assert comparison.average_downloads == 4.5

    def test_old_downloads_not_counted(self):
        activity = FileActivity(
            file_id=uuid4(),
            file_name="old.txt",
            download_times=[NOW - timedelta(days=8)],
        )
        comparison = build_comparison([activity], NOW)
        assert comparison.files[0].downloads == 0

    def test_no_files(self):
        comparison = build_comparison([], NOW)
        assert comparison.files == []
        assert comparison.average_downloads == 0.0
