"""
Сервис для управления файлами
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.core.security import generate_share_code, get_password_hash
from filedrop.core.storage import LocalStorage, storage as default_storage
from filedrop.exceptions import (
    BusinessLogicError,
    NotFoundError,
    PermissionError,
    ValidationError,
)
from filedrop.models.file import File
from filedrop.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

SHARE_CODE_ATTEMPTS = 10


class FileService:
    """Сервис для управления файлами владельца"""

    def __init__(self, db: AsyncSession, storage: LocalStorage | None = None) -> None:
        self.db = db
        self.storage = storage or default_storage
        self.subscription_service = SubscriptionService(db)

    async def upload_file(
        self,
        owner_id: uuid.UUID,
        filename: str | None,
        content: bytes,
        content_type: str | None = None,
        is_public: bool = False,
    ) -> File:
        """
        Загрузка файла с проверкой квот тарифа

        Raises:
            QuotaExceededError: При превышении лимитов тарифа
            StorageError: При ошибке записи объекта
        """
        if not content:
            raise ValidationError("Файл пустой", field="file")

        profile = await self.subscription_service.get_profile(owner_id)
        file_size = len(content)
        self.subscription_service.check_upload(profile, file_size)

        key = self.storage.build_key(owner_id, filename)
        self.storage.save(key, content)

        db_file = File(
            user_id=owner_id,
            original_name=filename or "unnamed",
            file_size=file_size,
            file_type=content_type or "application/octet-stream",
            storage_path=key,
            is_public=is_public,
        )
        self.db.add(db_file)
        self.subscription_service.track_upload(profile, file_size)

        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            # Объект без записи в БД никому не нужен
            self.storage.delete(key)
            raise

        await self.db.refresh(db_file)
        logger.info(f"Файл загружен: {db_file.id} ({file_size} байт)")
        return db_file

    async def get_file_by_id(self, file_id: uuid.UUID) -> File | None:
        """Получение файла по ID"""
        return await self.db.get(File, file_id)

    async def get_owned_file(self, file_id: uuid.UUID, owner_id: uuid.UUID) -> File:
        """
        Файл, принадлежащий пользователю

        Raises:
            NotFoundError: Файл не существует
            PermissionError: Файл принадлежит другому пользователю
        """
        file = await self.get_file_by_id(file_id)
        if file is None:
            raise NotFoundError("Файл", str(file_id))
        if file.user_id != owner_id:
            raise PermissionError("доступ к файлу", str(file_id))
        return file

    async def get_user_files(
        self, owner_id: uuid.UUID, offset: int = 0, limit: int = 50
    ) -> tuple[list[File], int]:
        """Файлы пользователя, новые первыми, и их общее количество"""
        query = (
            select(File)
            .where(File.user_id == owner_id)
            .order_by(File.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        total_result = await self.db.execute(
            select(func.count(File.id)).where(File.user_id == owner_id)
        )
        return list(result.scalars().all()), total_result.scalar() or 0

    async def rename_file(
        self, file_id: uuid.UUID, owner_id: uuid.UUID, new_name: str
    ) -> File:
        new_name = new_name.strip()
        if not new_name:
            raise ValidationError("Имя файла не может быть пустым", field="name")

        file = await self.get_owned_file(file_id, owner_id)
        file.original_name = new_name
        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def lock_file(
        self, file_id: uuid.UUID, owner_id: uuid.UUID, password: str
    ) -> File:
        """Заблокировать файл паролем; пароль обязателен"""
        if not password:
            raise ValidationError("Для блокировки нужен пароль", field="password")

        file = await self.get_owned_file(file_id, owner_id)
        file.is_locked = True
        file.lock_password_hash = get_password_hash(password)
        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def unlock_file(self, file_id: uuid.UUID, owner_id: uuid.UUID) -> File:
        file = await self.get_owned_file(file_id, owner_id)
        file.is_locked = False
        file.lock_password_hash = None
        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def generate_share_code(
        self, file_id: uuid.UUID, owner_id: uuid.UUID
    ) -> File:
        """Выдать файлу короткий код; повторный вызов возвращает тот же код"""
        file = await self.get_owned_file(file_id, owner_id)
        if file.share_code:
            return file

        for _ in range(SHARE_CODE_ATTEMPTS):
            code = generate_share_code()
            taken = await self.db.execute(select(File.id).where(File.share_code == code))
            if taken.scalar_one_or_none() is not None:
                continue
            file.share_code = code
            try:
                await self.db.commit()
            except IntegrityError:
                # Код занят параллельным запросом
                await self.db.rollback()
                file = await self.get_owned_file(file_id, owner_id)
                continue
            await self.db.refresh(file)
            return file

        raise BusinessLogicError(
            "Не удалось сгенерировать уникальный код", code="SHARE_CODE_EXHAUSTED"
        )

    async def delete_file(self, file_id: uuid.UUID, owner_id: uuid.UUID) -> bool:
        file = await self.get_owned_file(file_id, owner_id)
        await self.remove_file(file)
        await self.db.commit()
        return True

    async def remove_file(self, file: File) -> None:
        """
        Удалить объект, запись и освободить место в профиле.

        Коммит выполняет вызывающий код.
        """
        self.storage.delete(file.storage_path)
        profile = await self.subscription_service.get_profile(file.user_id)
        self.subscription_service.release_storage(profile, file.file_size)
        await self.db.delete(file)
        logger.info(f"Файл удалён: {file.id}")
