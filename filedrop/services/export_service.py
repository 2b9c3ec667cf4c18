"""
Выгрузка журнала скачиваний в CSV и JSON
"""

import csv
import io
import json
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.exceptions import AnalyticsValidationError, NoExportDataError
from filedrop.logging.analytics import analytics_logger
from filedrop.models.download_event import DownloadEvent
from filedrop.models.file import File
from filedrop.schemas.analytics import ExportFormat, ExportRange, ExportRow
from filedrop.services.analytics_aggregation import as_utc

RANGE_DAYS = {ExportRange.WEEK: 7, ExportRange.MONTH: 30}
EXPORT_FIELDS = list(ExportRow.model_fields)
MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.JSON: "application/json",
}


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: str


def resolve_range(
    date_range: ExportRange,
    now: datetime,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    Границы выборки для диапазона

    Raises:
        AnalyticsValidationError: Для custom без начала или с началом после конца
    """
    if date_range in RANGE_DAYS:
        return now - timedelta(days=RANGE_DAYS[date_range]), None
    if date_range == ExportRange.ALL:
        return None, None

    if start is None:
        raise AnalyticsValidationError(
            "Для произвольного диапазона нужна дата начала", field="start_date"
        )
    start = as_utc(start)
    end = as_utc(end) if end is not None else None
    if end is not None and start > end:
        raise AnalyticsValidationError(
            "Дата начала позже даты окончания", field="start_date", value=start
        )
    return start, end


def rows_to_csv(rows: list[ExportRow]) -> str:
    """CSV, все значения в кавычках"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_FIELDS)
    for row in rows:
        writer.writerow([getattr(row, name) for name in EXPORT_FIELDS])
    return buffer.getvalue()


def rows_to_json(rows: list[ExportRow]) -> str:
    return json.dumps([row.model_dump() for row in rows], indent=2, ensure_ascii=False)


def export_filename(fmt: ExportFormat, now: datetime) -> str:
    return f"analytics_export_{now.strftime('%Y-%m-%d_%H-%M-%S')}.{fmt.value}"


class ExportService:
    """Сервис выгрузки аналитики владельца"""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_rows(
        self,
        user_id: UUID,
        date_range: ExportRange = ExportRange.MONTH,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> list[ExportRow]:
        """Строки выгрузки, новые первыми"""
        now = now or datetime.now(UTC)
        since, until = resolve_range(date_range, now, start, end)

        query = (
            select(
                DownloadEvent.download_method,
                DownloadEvent.downloaded_at,
                DownloadEvent.downloader_ip,
                File.original_name,
                File.file_size,
                File.file_type,
            )
            .join(File, File.id == DownloadEvent.file_id)
            .where(File.user_id == user_id)
            .order_by(desc(DownloadEvent.downloaded_at))
        )
        if since is not None:
            query = query.where(DownloadEvent.downloaded_at >= since)
        if until is not None:
            query = query.where(DownloadEvent.downloaded_at <= until)

        result = await self.db.execute(query)
        return [
            ExportRow(
                file_name=name or "Unknown",
                file_size=size or 0,
                file_type=file_type or "Unknown",
                download_method=method,
                downloaded_at=downloaded_at.isoformat(),
                downloader_ip=ip or "N/A",
            )
            for method, downloaded_at, ip, name, size, file_type in result.all()
        ]

    async def export(
        self,
        user_id: UUID,
        fmt: ExportFormat = ExportFormat.CSV,
        date_range: ExportRange = ExportRange.MONTH,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> ExportFile:
        """
        Сформировать файл выгрузки

        Raises:
            NoExportDataError: Если за диапазон нет скачиваний
        """
        now = now or datetime.now(UTC)
        rows = await self.get_rows(user_id, date_range, start, end, now)
        if not rows:
            raise NoExportDataError(date_range.value)

        content = rows_to_csv(rows) if fmt == ExportFormat.CSV else rows_to_json(rows)
        analytics_logger.log_data_access(user_id, f"export_{fmt.value}", len(rows))
        return ExportFile(
            filename=export_filename(fmt, now),
            media_type=MEDIA_TYPES[fmt],
            content=content,
        )
