"""
Чистые функции агрегации журнала скачиваний.

Все функции принимают отметки времени событий (aware, UTC) и момент ``now``,
ничего не читают из базы и поэтому легко тестируются.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import UUID

from filedrop.exceptions import AnalyticsValidationError

HEATMAP_DAYS = 7
HOURS_IN_DAY = 24
COMPARISON_WINDOW_DAYS = 7
COMPARISON_TOP_FILES = 6

DAYS_OF_WEEK = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class TimePeriod(str, Enum):
    """Окно графика скачиваний"""

    HOURS_12 = "12h"
    DAY = "1d"
    MONTH = "1m"


# Период -> (количество интервалов, длина интервала)
PERIOD_INTERVALS: dict[TimePeriod, tuple[int, timedelta]] = {
    TimePeriod.HOURS_12: (12, timedelta(hours=1)),
    TimePeriod.DAY: (24, timedelta(hours=1)),
    TimePeriod.MONTH: (30, timedelta(days=1)),
}


@dataclass(frozen=True)
class TimeSeriesPoint:
    label: str
    start: datetime
    count: int


@dataclass(frozen=True)
class HeatmapCell:
    day: int
    hour: int
    count: int
    intensity: int


@dataclass(frozen=True)
class Heatmap:
    cells: list[HeatmapCell]
    max_count: int
    total: int


@dataclass
class FileActivity:
    """Исходные данные файла для сравнения"""

    file_id: UUID
    file_name: str
    download_times: list[datetime] = field(default_factory=list)
    share_count: int = 0


@dataclass(frozen=True)
class FileComparison:
    file_id: UUID
    file_name: str
    downloads: int
    shares: int


@dataclass(frozen=True)
class Comparison:
    files: list[FileComparison]
    total_downloads: int
    total_shares: int
    average_downloads: float


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_period(period: str | TimePeriod) -> TimePeriod:
    """
    Проверить и привести период к TimePeriod

    Raises:
        AnalyticsValidationError: Для неизвестного периода
    """
    try:
        return TimePeriod(period)
    except ValueError as e:
        raise AnalyticsValidationError(
            "Неизвестный период", field="period", value=period
        ) from e


def period_start(period: str | TimePeriod, now: datetime) -> datetime:
    """Начало самого старого интервала периода"""
    intervals, step = PERIOD_INTERVALS[parse_period(period)]
    return _bucket_floor(as_utc(now), step) - step * (intervals - 1)


def _bucket_floor(moment: datetime, step: timedelta) -> datetime:
    if step >= timedelta(days=1):
        return moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return moment.replace(minute=0, second=0, microsecond=0)


def build_time_series(
    timestamps: Iterable[datetime], period: str | TimePeriod, now: datetime
) -> list[TimeSeriesPoint]:
    """
    Временной ряд скачиваний с заполнением пустых интервалов нулями.

    Длина ряда равна числу интервалов периода, первый элемент самый старый,
    последний соответствует текущему часу или дню.
    """
    period = parse_period(period)
    intervals, step = PERIOD_INTERVALS[period]
    now = as_utc(now)
    current = _bucket_floor(now, step)
    first = current - step * (intervals - 1)

    counts: Counter[datetime] = Counter()
    for ts in timestamps:
        ts = as_utc(ts)
        if first <= ts < current + step:
            counts[_bucket_floor(ts, step)] += 1

    label_format = "%b %d" if step >= timedelta(days=1) else "%H:%M"
    points = []
    for i in range(intervals):
        start = first + step * i
        points.append(
            TimeSeriesPoint(
                label=start.strftime(label_format), start=start, count=counts[start]
            )
        )
    return points


def calculate_trend(today: int, yesterday: int) -> float:
    """Изменение сегодняшнего числа скачиваний относительно вчерашнего, в %"""
    if yesterday == 0:
        return 100.0 if today > 0 else 0.0
    return (today - yesterday) / yesterday * 100


def percent_change(points: Sequence[TimeSeriesPoint]) -> float:
    """Изменение второй половины ряда относительно первой, в %"""
    if len(points) < 2:
        return 0.0
    middle = len(points) // 2
    first_half = sum(p.count for p in points[:middle])
    second_half = sum(p.count for p in points[middle:])
    return calculate_trend(second_half, first_half)


def count_today_yesterday(
    timestamps: Iterable[datetime], now: datetime
) -> tuple[int, int]:
    """Количество событий за сегодня и вчера по UTC"""
    today = as_utc(now).date()
    yesterday = today - timedelta(days=1)
    today_count = yesterday_count = 0
    for ts in timestamps:
        day = as_utc(ts).date()
        if day == today:
            today_count += 1
        elif day == yesterday:
            yesterday_count += 1
    return today_count, yesterday_count


def _in_trailing_window(ts: datetime, now: datetime, days: int) -> bool:
    return now - timedelta(days=days) < ts <= now


def day_of_week(moment: datetime) -> int:
    """День недели, воскресенье = 0"""
    return (moment.weekday() + 1) % 7


def intensity_tier(count: int, max_count: int) -> int:
    """Уровень интенсивности 0-4 относительно максимальной ячейки"""
    if count == 0 or max_count <= 0:
        return 0
    ratio = count / max_count
    if ratio < 0.25:
        return 1
    if ratio < 0.5:
        return 2
    if ratio < 0.75:
        return 3
    return 4


def build_heatmap(timestamps: Iterable[datetime], now: datetime) -> Heatmap:
    """Сетка 7x24 (день недели, час) за последние 7 дней; всегда 168 ячеек"""
    now = as_utc(now)
    counts: Counter[tuple[int, int]] = Counter()
    for ts in timestamps:
        ts = as_utc(ts)
        if _in_trailing_window(ts, now, HEATMAP_DAYS):
            counts[(day_of_week(ts), ts.hour)] += 1

    max_count = max(counts.values(), default=0)
    cells = [
        HeatmapCell(
            day=day,
            hour=hour,
            count=counts[(day, hour)],
            intensity=intensity_tier(counts[(day, hour)], max_count),
        )
        for day in range(HEATMAP_DAYS)
        for hour in range(HOURS_IN_DAY)
    ]
    return Heatmap(cells=cells, max_count=max_count, total=sum(counts.values()))


def find_peak_hour(timestamps: Iterable[datetime], now: datetime) -> int | None:
    """Час с наибольшим числом скачиваний за 7 дней; при равенстве меньший час"""
    now = as_utc(now)
    by_hour = [0] * HOURS_IN_DAY
    for ts in timestamps:
        ts = as_utc(ts)
        if _in_trailing_window(ts, now, HEATMAP_DAYS):
            by_hour[ts.hour] += 1

    peak = max(by_hour)
    if peak == 0:
        return None
    return by_hour.index(peak)


def build_comparison(files: Iterable[FileActivity], now: datetime) -> Comparison:
    """Топ файлов по скачиваниям за 7 дней с итогами по показанным файлам"""
    now = as_utc(now)
    rows = [
        FileComparison(
            file_id=activity.file_id,
            file_name=activity.file_name,
            downloads=sum(
                1
                for ts in activity.download_times
                if _in_trailing_window(as_utc(ts), now, COMPARISON_WINDOW_DAYS)
            ),
            shares=activity.share_count,
        )
        for activity in files
    ]
    rows.sort(key=lambda row: row.downloads, reverse=True)
    top = rows[:COMPARISON_TOP_FILES]

    total_downloads = sum(row.downloads for row in top)
    total_shares = sum(row.shares for row in top)
    average = total_downloads / len(top) if top else 0.0

    return Comparison(
        files=top,
        total_downloads=total_downloads,
        total_shares=total_shares,
        average_downloads=average,
    )
