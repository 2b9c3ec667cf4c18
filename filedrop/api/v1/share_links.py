"""
API эндпоинты для публичных ссылок и доступа по коду
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.api.v1.files import attachment_response
from filedrop.auth.dependencies import get_current_active_user
from filedrop.core.database import get_db
from filedrop.core.storage import LocalStorage, get_storage
from filedrop.middleware import get_client_ip
from filedrop.models.user import User
from filedrop.schemas.share_link import (
    DownloadRequest,
    ShareDescriptionResponse,
    ShareLinkCreate,
    ShareLinkResponse,
    ShareLinkStats,
)
from filedrop.services.download_service import DownloadService
from filedrop.services.share_link_service import ShareLinkService, link_response

router = APIRouter()


@router.post("/", response_model=ShareLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_share_link(
    share_data: ShareLinkCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ShareLinkResponse:
    """Создать новую публичную ссылку."""
    share_link = await ShareLinkService(db).create_share_link(
        share_data, current_user.id
    )
    return link_response(share_link)


@router.get("/", response_model=list[ShareLinkResponse])
async def get_user_share_links(
    file_id: UUID | None = None,
    include_inactive: bool = False,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> list[ShareLinkResponse]:
    """Получить публичные ссылки пользователя."""
    share_links = await ShareLinkService(db).get_user_share_links(
        current_user.id, file_id, include_inactive, limit, offset
    )
    return [link_response(link) for link in share_links]


@router.get("/stats", response_model=ShareLinkStats)
async def get_share_stats(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ShareLinkStats:
    """Получить статистику публичных ссылок."""
    return await ShareLinkService(db).get_share_stats(current_user.id)


# Публичный доступ без аутентификации


@router.get("/public/{token}", response_model=ShareDescriptionResponse)
async def describe_public_link(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> ShareDescriptionResponse:
    """Сведения о файле по токену ссылки."""
    description = await DownloadService(db).describe_token(token)
    return ShareDescriptionResponse.model_validate(description)


@router.post("/public/{token}/download")
async def download_public_link(
    token: str,
    request: Request,
    data: DownloadRequest | None = None,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> Response:
    """Скачать файл по токену ссылки; пароль передаётся в теле."""
    result = await DownloadService(db, storage).download_by_token(
        token,
        password=data.password if data else None,
        user_agent=request.headers.get("user-agent"),
        ip=get_client_ip(request),
    )
    return attachment_response(result)


@router.get("/code/{code}", response_model=ShareDescriptionResponse)
async def describe_share_code(
    code: str,
    db: AsyncSession = Depends(get_db),
) -> ShareDescriptionResponse:
    """Сведения о файле по короткому коду."""
    description = await DownloadService(db).describe_code(code)
    return ShareDescriptionResponse.model_validate(description)


@router.post("/code/{code}/download")
async def download_by_code(
    code: str,
    request: Request,
    data: DownloadRequest | None = None,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> Response:
    """Скачать файл по короткому коду."""
    result = await DownloadService(db, storage).download_by_code(
        code,
        password=data.password if data else None,
        user_agent=request.headers.get("user-agent"),
        ip=get_client_ip(request),
    )
    return attachment_response(result)


@router.get("/{link_id}", response_model=ShareLinkResponse)
async def get_share_link(
    link_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ShareLinkResponse:
    """Получить информацию о публичной ссылке."""
    link = await ShareLinkService(db).get_owned_link(link_id, current_user.id)
    return link_response(link)


@router.delete("/{link_id}", response_model=ShareLinkResponse)
async def deactivate_share_link(
    link_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ShareLinkResponse:
    """Отключить публичную ссылку; журнал скачиваний сохраняется."""
    link = await ShareLinkService(db).deactivate_share_link(link_id, current_user.id)
    return link_response(link)
