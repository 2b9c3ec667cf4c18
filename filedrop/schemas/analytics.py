"""
Pydantic схемы для аналитики скачиваний
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from filedrop.services.analytics_aggregation import DAYS_OF_WEEK, TimePeriod


class TimeSeriesPointResponse(BaseModel):
    """Один интервал графика"""

    label: str = Field(..., description="Подпись интервала (HH:MM или Mon DD)")
    start: datetime = Field(..., description="Начало интервала (UTC)")
    count: int = Field(..., description="Скачиваний в интервале")

    model_config = ConfigDict(from_attributes=True)


class TimeSeriesResponse(BaseModel):
    """График скачиваний за период"""

    period: TimePeriod = Field(..., description="Период")
    points: list[TimeSeriesPointResponse] = Field(..., description="Интервалы")
    total: int = Field(..., description="Всего скачиваний за период")
    percent_change: float = Field(
        ..., description="Изменение второй половины периода относительно первой, %"
    )


class HeatmapCellResponse(BaseModel):
    day: int = Field(..., ge=0, le=6, description="День недели, воскресенье = 0")
    hour: int = Field(..., ge=0, le=23, description="Час (UTC)")
    count: int = Field(..., description="Скачиваний")
    intensity: int = Field(..., ge=0, le=4, description="Уровень интенсивности")

    model_config = ConfigDict(from_attributes=True)


class HeatmapResponse(BaseModel):
    """Тепловая карта за последние 7 дней"""

    cells: list[HeatmapCellResponse] = Field(..., description="168 ячеек")
    max_count: int = Field(..., description="Максимум в одной ячейке")
    total: int = Field(..., description="Всего скачиваний в окне")
    days: list[str] = Field(default_factory=lambda: list(DAYS_OF_WEEK))

    model_config = ConfigDict(from_attributes=True)


class FileComparisonResponse(BaseModel):
    file_id: UUID
    file_name: str
    downloads: int = Field(..., description="Скачиваний за 7 дней")
    shares: int = Field(..., description="Ссылок за всё время")

    model_config = ConfigDict(from_attributes=True)


class ComparisonResponse(BaseModel):
    """Сравнение файлов по скачиваниям"""

    files: list[FileComparisonResponse]
    total_downloads: int
    total_shares: int
    average_downloads: float

    model_config = ConfigDict(from_attributes=True)


class TrendResponse(BaseModel):
    today: int = Field(..., description="Скачиваний сегодня (UTC)")
    yesterday: int = Field(..., description="Скачиваний вчера (UTC)")
    trend: float = Field(..., description="Изменение, %")


class PeakHourResponse(BaseModel):
    peak_hour: int | None = Field(None, description="Час пик за 7 дней (UTC)")
    downloads: int = Field(0, description="Скачиваний в час пик")


class AnalyticsSummary(BaseModel):
    """Краткая сводка для дашборда"""

    total_downloads: int
    today_downloads: int
    yesterday_downloads: int
    trend: float
    peak_hour: int | None = None
    average_per_day: float = Field(..., description="Среднее за день за 7 дней")
    unique_files: int = Field(..., description="Разных файлов скачано за 7 дней")
    active_shares: int
    last_download_at: datetime | None = None


class RecentDownload(BaseModel):
    """Запись журнала для ленты"""

    id: UUID
    file_id: UUID
    file_name: str
    download_method: str
    downloaded_at: datetime
    downloader_ip: str | None = None


class PopularFile(BaseModel):
    file_id: UUID
    file_name: str
    downloads: int


class AnalyticsOverview(BaseModel):
    """Общая картина по аккаунту"""

    total_files: int
    total_shares: int
    total_downloads: int
    recent_downloads: list[RecentDownload]
    popular_files: list[PopularFile]
    storage_used: int
    storage_limit: int | None = None
    subscription_tier: str


class LiveFeedResponse(BaseModel):
    events: list[RecentDownload]


class ExportRange(str, Enum):
    """Диапазон выгрузки"""

    WEEK = "week"
    MONTH = "month"
    ALL = "all"
    CUSTOM = "custom"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


class ExportRow(BaseModel):
    """Строка выгрузки"""

    file_name: str
    file_size: int
    file_type: str
    download_method: str
    downloaded_at: str
    downloader_ip: str
