"""
API роутеры для управления файлами
"""

import uuid
from urllib.parse import quote

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.auth.dependencies import get_current_active_user
from filedrop.core.config import settings
from filedrop.core.database import get_db
from filedrop.core.storage import LocalStorage, get_storage
from filedrop.middleware import get_client_ip
from filedrop.models.user import User
from filedrop.schemas.file import (
    FileListResponse,
    FileLockRequest,
    FileRenameRequest,
    FileResponse,
    FileUploadResponse,
    ShareCodeResponse,
)
from filedrop.services.download_service import DownloadResult, DownloadService
from filedrop.services.file_service import FileService

router = APIRouter()


def attachment_response(result: DownloadResult) -> Response:
    """Ответ с байтами файла и Content-Disposition"""
    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={
            "Content-Disposition": (
                f"attachment; filename*=UTF-8''{quote(result.file_name)}"
            )
        },
    )


@router.post(
    "/upload", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED
)
async def upload_file(
    file: UploadFile = File(...),
    is_public: bool = Form(False),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> FileUploadResponse:
    """
    Загрузка файла

    Размер и общий объём проверяются по тарифу пользователя.
    """
    content = await file.read()
    uploaded = await FileService(db, storage).upload_file(
        owner_id=current_user.id,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
        is_public=is_public,
    )
    return FileUploadResponse(
        message="Файл загружен",
        file=FileResponse.model_validate(uploaded),
    )


@router.get("/", response_model=FileListResponse)
async def list_files(
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> FileListResponse:
    """Файлы текущего пользователя"""
    files, total = await FileService(db).get_user_files(
        current_user.id, offset=offset, limit=limit
    )
    return FileListResponse(
        files=[FileResponse.model_validate(f) for f in files],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    """Информация о своём файле"""
    db_file = await FileService(db).get_owned_file(file_id, current_user.id)
    return FileResponse.model_validate(db_file)


@router.patch("/{file_id}", response_model=FileResponse)
async def rename_file(
    file_id: uuid.UUID,
    data: FileRenameRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    db_file = await FileService(db).rename_file(file_id, current_user.id, data.name)
    return FileResponse.model_validate(db_file)


@router.post("/{file_id}/lock", response_model=FileResponse)
async def lock_file(
    file_id: uuid.UUID,
    data: FileLockRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    """Защитить файл паролем"""
    db_file = await FileService(db).lock_file(file_id, current_user.id, data.password)
    return FileResponse.model_validate(db_file)


@router.post("/{file_id}/unlock", response_model=FileResponse)
async def unlock_file(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> FileResponse:
    db_file = await FileService(db).unlock_file(file_id, current_user.id)
    return FileResponse.model_validate(db_file)


@router.post("/{file_id}/share-code", response_model=ShareCodeResponse)
async def generate_share_code(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> ShareCodeResponse:
    """Выдать файлу короткий код доступа"""
    db_file = await FileService(db).generate_share_code(file_id, current_user.id)
    return ShareCodeResponse(file_id=db_file.id, share_code=db_file.share_code or "")


@router.get("/{file_id}/download")
async def download_file(
    file_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> Response:
    """Скачивание своего файла (способ direct)"""
    db_file = await FileService(db, storage).get_owned_file(file_id, current_user.id)
    result = await DownloadService(db, storage).download_own_file(
        db_file,
        user_agent=request.headers.get("user-agent"),
        ip=get_client_ip(request),
    )
    return attachment_response(result)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> None:
    """Удалить файл вместе с объектом в хранилище"""
    await FileService(db, storage).delete_file(file_id, current_user.id)
