"""
Запись скачиваний в журнал и обновление денормализованных счётчиков
"""

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.exceptions import DownloadLimitReachedError
from filedrop.logging.analytics import analytics_logger
from filedrop.models.download_event import AccessMethod, DownloadEvent
from filedrop.models.file import File
from filedrop.models.share_link import SharedLink
from filedrop.services.analytics_service import invalidate_analytics_cache
from filedrop.services.share_resolver import ResolvedShare

if TYPE_CHECKING:
    from filedrop.websocket.notifier import RealtimeNotifier

logger = logging.getLogger(__name__)

USER_AGENT_MAX_LENGTH = 1000


def _limited_increment(model: type[File] | type[SharedLink], row_id: UUID):
    """UPDATE ... SET download_count + 1, только если лимит ещё не исчерпан"""
    return (
        update(model)
        .where(
            model.id == row_id,
            or_(
                model.download_limit.is_(None),
                model.download_count < model.download_limit,
            ),
        )
        .values(download_count=model.download_count + 1)
        .execution_options(synchronize_session=False)
    )


def _plain_increment(model: type[File] | type[SharedLink], row_id: UUID):
    return (
        update(model)
        .where(model.id == row_id)
        .values(download_count=model.download_count + 1)
        .execution_options(synchronize_session=False)
    )


class DownloadRecorder:
    """
    Фиксирует одно успешное скачивание.

    Событие и инкременты счётчиков пишутся в одной транзакции. Инкремент
    счётчика, к которому относится лимит, условный: если параллельный запрос
    уже исчерпал лимит, ничего не записывается и поднимается
    DownloadLimitReachedError. Повторное нажатие записывает второе событие.
    """

    def __init__(
        self, db: AsyncSession, notifier: "RealtimeNotifier | None" = None
    ) -> None:
        self.db = db
        self.notifier = notifier

    async def record(
        self,
        share: ResolvedShare,
        user_agent: str | None = None,
        ip: str | None = None,
    ) -> DownloadEvent:
        file = share.file
        link = share.link
        file_id = file.id
        link_id = link.id if link is not None else None

        try:
            if link is not None:
                limited = await self.db.execute(_limited_increment(SharedLink, link_id))
                if limited.rowcount == 0:
                    await self.db.rollback()
                    raise DownloadLimitReachedError()
                await self.db.execute(_plain_increment(File, file_id))
            elif share.method == AccessMethod.CODE:
                limited = await self.db.execute(_limited_increment(File, file_id))
                if limited.rowcount == 0:
                    await self.db.rollback()
                    raise DownloadLimitReachedError()
            else:
                # Владелец скачивает свой файл без ограничений
                await self.db.execute(_plain_increment(File, file_id))

            event = DownloadEvent(
                file_id=file_id,
                shared_link_id=link_id,
                download_method=share.method.value,
                downloader_ip=ip,
                downloader_user_agent=(user_agent or "")[:USER_AGENT_MAX_LENGTH]
                or None,
            )
            self.db.add(event)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        owner_id = file.user_id
        file_name = file.original_name

        # Событие уже зафиксировано, устаревшие счётчики в памяти не ошибка
        try:
            await self.db.refresh(file)
            if link is not None:
                await self.db.refresh(link)
        except SQLAlchemyError as e:
            logger.warning(f"Не удалось обновить счётчики файла {file_id}: {e}")

        analytics_logger.log_download_recorded(file_id, share.method.value, link_id)
        await invalidate_analytics_cache(owner_id)

        if self.notifier is not None:
            payload = event.to_payload()
            payload["owner_id"] = str(owner_id)
            payload["file_name"] = file_name
            await self.notifier.publish(payload)

        return event

    async def reconcile_counters(self, file_id: UUID) -> int:
        """
        Пересчитать счётчики файла и его ссылок по журналу событий.

        Returns:
            int: Количество событий файла в журнале
        """
        total_result = await self.db.execute(
            select(func.count(DownloadEvent.id)).where(DownloadEvent.file_id == file_id)
        )
        total = total_result.scalar() or 0

        await self.db.execute(
            update(File)
            .where(File.id == file_id)
            .values(download_count=total)
            .execution_options(synchronize_session=False)
        )

        per_link_result = await self.db.execute(
            select(DownloadEvent.shared_link_id, func.count(DownloadEvent.id))
            .where(
                DownloadEvent.file_id == file_id,
                DownloadEvent.shared_link_id.is_not(None),
            )
            .group_by(DownloadEvent.shared_link_id)
        )
        per_link = dict(per_link_result.all())

        links_result = await self.db.execute(
            select(SharedLink.id).where(SharedLink.file_id == file_id)
        )
        for link_id in links_result.scalars().all():
            await self.db.execute(
                update(SharedLink)
                .where(SharedLink.id == link_id)
                .values(download_count=per_link.get(link_id, 0))
                .execution_options(synchronize_session=False)
            )

        await self.db.commit()
        logger.info(f"Счётчики файла {file_id} пересчитаны: {total}")
        return total
