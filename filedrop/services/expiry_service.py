"""
Автоудаление файлов по правилам тарифов.

free и basic: файлы старше 48 часов.
pro: все файлы через 35 дней после окончания подписки.

Запуск вручную: ``python -m filedrop.services.expiry_service``
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.config import settings
from filedrop.core.storage import LocalStorage
from filedrop.exceptions import StorageError
from filedrop.models.file import File
from filedrop.models.user import Profile, SubscriptionTier
from filedrop.services.file_service import FileService

logger = logging.getLogger(__name__)

TEMPORARY_TIERS = (SubscriptionTier.FREE.value, SubscriptionTier.BASIC.value)


@dataclass
class ExpiryReport:
    deleted: int = 0
    errors: list[str] = field(default_factory=list)


class ExpiryService:
    """Поиск и удаление файлов с истёкшим сроком хранения"""

    def __init__(self, db: AsyncSession, storage: LocalStorage | None = None) -> None:
        self.db = db
        self.file_service = FileService(db, storage)

    async def find_expired_files(self, now: datetime | None = None) -> list[File]:
        now = now or datetime.now(UTC)
        temporary_cutoff = now - timedelta(hours=settings.FREE_TIER_FILE_TTL_HOURS)
        grace_cutoff = now - timedelta(days=settings.PRO_GRACE_PERIOD_DAYS)

        temporary = await self.db.execute(
            select(File)
            .join(Profile, Profile.id == File.user_id)
            .where(
                Profile.subscription_tier.in_(TEMPORARY_TIERS),
                File.created_at < temporary_cutoff,
            )
        )
        lapsed_pro = await self.db.execute(
            select(File)
            .join(Profile, Profile.id == File.user_id)
            .where(
                Profile.subscription_tier == SubscriptionTier.PRO.value,
                Profile.subscription_end_date.is_not(None),
                Profile.subscription_end_date < grace_cutoff,
            )
        )
        return list(temporary.scalars().all()) + list(lapsed_pro.scalars().all())

    async def delete_expired_files(self, now: datetime | None = None) -> ExpiryReport:
        """Удалить просроченные файлы; ошибка одного файла не останавливает остальные"""
        report = ExpiryReport()
        expired_ids = [file.id for file in await self.find_expired_files(now)]
        for file_id in expired_ids:
            # После rollback объекты сессии просрочены, поэтому перечитываем
            file = await self.db.get(File, file_id)
            if file is None:
                continue
            try:
                await self.file_service.remove_file(file)
                await self.db.commit()
                report.deleted += 1
            except StorageError as e:
                await self.db.rollback()
                logger.error(f"Не удалось удалить объект файла {file_id}: {e.message}")
                report.errors.append(f"{file_id}: {e.message}")

        logger.info(
            f"Автоудаление завершено: удалено {report.deleted}, ошибок {len(report.errors)}"
        )
        return report


async def run_expiry() -> ExpiryReport:
    from filedrop.core.database import AsyncSessionLocal

    async with AsyncSessionLocal() as session:
        return await ExpiryService(session).delete_expired_files()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_expiry())
