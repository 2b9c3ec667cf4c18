"""
Основной файл приложения FastAPI
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.api.v1.api import api_router
from filedrop.core import close_db, close_redis, init_db, init_redis
from filedrop.core.config import settings
from filedrop.core.database import get_db
from filedrop.core.redis import redis_service
from filedrop.exceptions import (
    BaseAPIException,
    ShareNotFoundError,
    exception_to_http_exception,
)
from filedrop.middleware import (
    ErrorHandlingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from filedrop.services.download_service import DownloadService
from filedrop.websocket.notifier import realtime_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Управление жизненным циклом приложения"""
    logger.info(f"Запуск {settings.PROJECT_NAME} v{settings.VERSION}")

    await init_db()
    await init_redis()
    await realtime_notifier.start_listener()

    logger.info("Приложение успешно запущено")

    yield

    logger.info("Остановка приложения...")
    await realtime_notifier.stop_listener()
    await close_redis()
    await close_db()
    logger.info("Приложение остановлено")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Обмен файлами по ссылкам и кодам с аналитикой скачиваний",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan,
)

templates = Jinja2Templates(directory=Path(__file__).parent / "templates")

# Последний добавленный middleware выполняется первым
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RateLimitMiddleware, redis=redis_service)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    """Кастомные исключения в JSON {"message", "details", "type"}"""
    http_exc = exception_to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content=http_exc.detail)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """
    Проверка здоровья приложения

    Returns:
        dict: Статус приложения
    """
    return {
        "status": "healthy",
        "project": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "redis": "up" if redis_service.available else "down",
        "realtime": "redis" if realtime_notifier.listening else "local",
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _format_size(size: float) -> str:
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


@app.get("/share/{token}", response_class=HTMLResponse)
async def share_page(
    request: Request, token: str, db: AsyncSession = Depends(get_db)
) -> HTMLResponse:
    """
    Страница получателя ссылки

    Показывает файл и условия доступа; само скачивание идёт через API.
    """
    try:
        share = await DownloadService(db).describe_token(token)
    except ShareNotFoundError as e:
        return templates.TemplateResponse(
            request,
            "share.html",
            {"settings": settings, "share": None, "message": e.message},
            status_code=404,
        )

    return templates.TemplateResponse(
        request,
        "share.html",
        {
            "settings": settings,
            "share": share,
            "size": _format_size(share.file_size),
            "download_url": f"{settings.API_V1_STR}/share-links/public/{token}/download",
        },
    )


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "filedrop.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=8000,
        reload=settings.DEBUG,
        log_level="info" if not settings.DEBUG else "debug",
    )
