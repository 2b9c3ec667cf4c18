"""
Pydantic схемы для публичных ссылок и доступа по коду
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from filedrop.models.download_event import AccessMethod
from filedrop.models.share_link import LinkType
from filedrop.services.access_validator import DenyReason

DEFAULT_LINK_EXPIRY_DAYS = 7


class ShareLinkCreate(BaseModel):
    """Схема для создания публичной ссылки."""

    file_id: UUID = Field(..., description="ID файла")
    link_type: LinkType = Field(default=LinkType.DIRECT, description="Тип ссылки")
    expiry_days: int | None = Field(
        default=DEFAULT_LINK_EXPIRY_DAYS,
        ge=0,
        le=365,
        description="Срок действия в днях (0 - бессрочно)",
    )
    download_limit: int | None = Field(
        None, ge=1, description="Максимальное количество скачиваний"
    )
    password: str | None = Field(
        None, min_length=1, max_length=255, description="Пароль для доступа"
    )
    recipient_email: EmailStr | None = Field(None, description="Email получателя")

    @model_validator(mode="after")
    def check_recipient(self) -> "ShareLinkCreate":
        """Для email-ссылки нужен получатель"""
        if self.link_type == LinkType.EMAIL and not self.recipient_email:
            raise ValueError("Для email-ссылки нужен адрес получателя")
        return self


class ShareLinkResponse(BaseModel):
    """Схема ответа с информацией о публичной ссылке."""

    id: UUID
    file_id: UUID
    share_token: str = Field(..., description="Токен доступа")
    link_type: LinkType
    recipient_email: str | None = None
    has_password: bool
    expires_at: datetime | None = None
    download_limit: int | None = None
    download_count: int
    is_active: bool
    is_expired: bool
    is_download_limit_reached: bool
    created_at: datetime | None = None
    public_url: str


class ShareLinkStats(BaseModel):
    """Статистика ссылок пользователя."""

    total_links: int
    active_links: int
    expired_links: int
    total_downloads: int
    most_downloaded: list[ShareLinkResponse]


class ShareDescriptionResponse(BaseModel):
    """Что видит получатель ссылки или кода до скачивания"""

    file_name: str
    file_size: int
    file_type: str
    method: AccessMethod
    requires_password: bool
    expires_at: datetime | None = None
    download_limit: int | None = None
    download_count: int
    available: bool = Field(..., description="Можно ли скачать при верном пароле")
    reason: DenyReason | None = Field(None, description="Причина недоступности")

    model_config = {"from_attributes": True}


class DownloadRequest(BaseModel):
    """Тело запроса на скачивание"""

    password: str | None = Field(None, max_length=255)
