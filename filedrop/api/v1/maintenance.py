"""
Служебные эндпоинты (только для администраторов)
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.auth.dependencies import get_current_admin_user
from filedrop.core.database import get_db
from filedrop.core.storage import LocalStorage, get_storage
from filedrop.models.user import User
from filedrop.services.expiry_service import ExpiryService

router = APIRouter()


class ExpiryReportResponse(BaseModel):
    deleted: int
    errors: list[str]


@router.post("/expire-files", response_model=ExpiryReportResponse)
async def expire_files(
    now: datetime | None = None,
    current_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
) -> ExpiryReportResponse:
    """Удалить файлы с истёкшим сроком хранения по правилам тарифов"""
    report = await ExpiryService(db, storage).delete_expired_files(now)
    return ExpiryReportResponse(deleted=report.deleted, errors=report.errors)
