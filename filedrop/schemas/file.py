"""
Pydantic схемы для файлов
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileResponse(BaseModel):
    """Схема ответа файла"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(..., description="ID файла")
    user_id: uuid.UUID = Field(..., description="ID владельца")
    original_name: str = Field(..., description="Оригинальное имя файла")
    file_size: int = Field(..., description="Размер файла в байтах")
    file_type: str = Field(..., description="MIME тип файла")
    is_public: bool = Field(..., description="Флаг публичного доступа")
    is_locked: bool = Field(..., description="Защищён ли файл паролем")
    share_code: str | None = Field(None, description="Код доступа")
    download_count: int = Field(..., description="Количество скачиваний")
    download_limit: int | None = Field(None, description="Лимит скачиваний по коду")
    expires_at: datetime | None = Field(None, description="Срок действия кода")
    created_at: datetime = Field(..., description="Дата загрузки")

    # Вычисляемые поля
    file_extension: str = Field(..., description="Расширение файла")
    formatted_size: str = Field(..., description="Форматированный размер файла")


class FileUploadResponse(BaseModel):
    """Схема ответа при загрузке файла"""

    message: str = Field(..., description="Сообщение о результате")
    file: FileResponse = Field(..., description="Загруженный файл")


class FileListResponse(BaseModel):
    """Схема ответа со списком файлов"""

    files: list[FileResponse] = Field(..., description="Список файлов")
    total: int = Field(..., description="Общее количество файлов")
    offset: int = Field(..., description="Смещение")
    limit: int = Field(..., description="Лимит")


class FileRenameRequest(BaseModel):
    """Переименование файла"""

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Имя файла не может быть пустым")
        if "/" in v or "\\" in v:
            raise ValueError("Имя файла не может содержать разделители пути")
        return v


class FileLockRequest(BaseModel):
    """Защита файла паролем"""

    password: str = Field(..., min_length=1, max_length=128)


class ShareCodeResponse(BaseModel):
    """Код доступа к файлу"""

    file_id: uuid.UUID
    share_code: str
