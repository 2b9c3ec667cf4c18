"""
Middleware для обработки ошибок и rate limiting
"""

import ipaddress
import logging
import time
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from filedrop.core.config import settings
from filedrop.core.redis import RedisService
from filedrop.exceptions import (
    BaseAPIException,
    RateLimitError,
    exception_to_http_exception,
    handle_database_error,
)

logger = logging.getLogger(__name__)


def _is_trusted(
    host: str, networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network]
) -> bool:
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return any(address in network for network in networks)


def get_client_ip(request: Request, trusted_proxies: list[str] | None = None) -> str:
    """
    Получение IP адреса клиента

    Заголовки прокси учитываются, только если соединение пришло от
    доверенного прокси. Из X-Forwarded-For берётся крайний правый адрес,
    не принадлежащий доверенным прокси: левые звенья задаёт сам клиент.
    """
    peer = request.client.host if request.client else "unknown"
    proxies = settings.TRUSTED_PROXIES if trusted_proxies is None else trusted_proxies
    networks = [ipaddress.ip_network(proxy, strict=False) for proxy in proxies]
    if not _is_trusted(peer, networks):
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        for hop in reversed(hops):
            if not _is_trusted(hop, networks):
                return hop
        if hops:
            return hops[0]

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return peer


def default_rate_limits() -> dict[str, tuple[int, int]]:
    """Лимиты по префиксам путей: (запросов, окно в секундах)"""
    prefix = settings.API_V1_STR
    return {
        # Перебор коротких кодов ограничиваем жёстче всего
        f"{prefix}/share-links/code": (
            settings.RATE_LIMIT_CODE_LOOKUPS,
            settings.RATE_LIMIT_CODE_WINDOW,
        ),
        f"{prefix}/share-links/public": (
            settings.RATE_LIMIT_PUBLIC_LINKS,
            settings.RATE_LIMIT_PUBLIC_WINDOW,
        ),
        "/share/": (settings.RATE_LIMIT_PUBLIC_LINKS, settings.RATE_LIMIT_PUBLIC_WINDOW),
        f"{prefix}/auth/login": (5, 300),
        f"{prefix}/auth/register": (3, 3600),
        "default": (settings.RATE_LIMIT_DEFAULT, settings.RATE_LIMIT_DEFAULT_WINDOW),
    }


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware для обработки ошибок"""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> JSONResponse | Response:
        try:
            return await call_next(request)
        except BaseAPIException as exc:
            logger.warning(
                f"API Exception: {exc.__class__.__name__}: {exc.message}",
                extra={"details": exc.details, "path": request.url.path},
            )

            http_exc = exception_to_http_exception(exc)
            return JSONResponse(
                status_code=http_exc.status_code, content=http_exc.detail
            )

        except StarletteHTTPException as exc:
            logger.warning(
                f"HTTP Exception: {exc.status_code} - {exc.detail}",
                extra={"path": request.url.path},
            )

            return JSONResponse(
                status_code=exc.status_code,
                content={"message": exc.detail, "details": {}, "type": "HTTPException"},
            )

        except SQLAlchemyError as exc:
            logger.error(
                f"Database error: {exc.__class__.__name__}: {exc}",
                extra={"path": request.url.path},
                exc_info=True,
            )
            http_exc = exception_to_http_exception(handle_database_error(exc))
            return JSONResponse(
                status_code=http_exc.status_code, content=http_exc.detail
            )

        except Exception as exc:
            logger.error(
                f"Unexpected error: {exc.__class__.__name__}: {str(exc)}",
                extra={"path": request.url.path},
                exc_info=True,
            )

            if settings.DEBUG:
                return JSONResponse(
                    status_code=500,
                    content={
                        "message": str(exc),
                        "details": {"type": exc.__class__.__name__},
                        "type": "InternalServerError",
                    },
                )
            return JSONResponse(
                status_code=500,
                content={
                    "message": "Внутренняя ошибка сервера",
                    "details": {},
                    "type": "InternalServerError",
                },
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware для rate limiting

    Счётчик ведётся на пару (IP, префикс пути), поэтому запросы к разным
    кодам делят один лимит. Без Redis используется счётчик в памяти.
    """

    def __init__(
        self,
        app: ASGIApp,
        redis: RedisService | None = None,
        limits: dict[str, tuple[int, int]] | None = None,
        enabled: bool | None = None,
    ) -> None:
        super().__init__(app)
        self.redis = redis
        self.limits = limits or default_rate_limits()
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self._memory_limits: dict[str, dict[str, int]] = {}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> JSONResponse | Response:
        if not self.enabled:
            return await call_next(request)

        client_ip = get_client_ip(request)
        bucket, (limit, window) = self._get_limit_for_path(request.url.path)
        key = f"rate_limit:{client_ip}:{bucket}"

        if self._redis_available:
            current = await self._incr_redis(key, window)
        else:
            current = None
        if current is None:
            current = self._incr_memory(key, window)

        if current > limit:
            logger.warning(
                f"Превышен лимит запросов {client_ip} на {bucket}",
                extra={"client_ip": client_ip, "bucket": bucket, "limit": limit},
            )
            http_exc = exception_to_http_exception(RateLimitError(limit, window))
            return JSONResponse(
                status_code=http_exc.status_code,
                content=http_exc.detail,
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(time.time()) + window),
                    "Retry-After": str(window),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current))
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + window)
        return response

    @property
    def _redis_available(self) -> bool:
        return (
            self.redis is not None
            and self.redis.available
            and self.redis.redis is not None
        )

    def _get_limit_for_path(self, path: str) -> tuple[str, tuple[int, int]]:
        """Префикс и лимиты для пути"""
        for pattern, rule in self.limits.items():
            if pattern != "default" and path.startswith(pattern):
                return pattern, rule

        return "default", self.limits["default"]

    async def _incr_redis(self, key: str, window: int) -> int | None:
        """Счётчик в Redis; None при ошибке соединения или без клиента"""
        if self.redis is None or self.redis.redis is None:
            return None
        try:
            current = await self.redis.redis.incr(key)
            if current == 1:
                await self.redis.redis.expire(key, window)
            return int(current)
        except Exception as exc:
            logger.error(f"Redis rate limit error: {exc}")
            return None

    def _incr_memory(self, key: str, window: int) -> int:
        """Счётчик в памяти (fallback)"""
        now = int(time.time())
        entry = self._memory_limits.get(key)
        if entry is None or now > entry["reset_time"]:
            entry = {"count": 0, "reset_time": now + window}
            self._memory_limits[key] = entry

        entry["count"] += 1
        return entry["count"]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware для добавления security заголовков"""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "no-referrer"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware для логирования запросов"""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Any]
    ) -> Response:
        start_time = time.time()

        path = request.url.path
        logger.info(
            f"Request started: {request.method} {path}",
            extra={
                "method": request.method,
                "path": path,
                "client_ip": get_client_ip(request),
            },
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {path} - {response.status_code} - {process_time:.3f}s",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "process_time": process_time,
            },
        )

        response.headers["X-Process-Time"] = str(process_time)

        return response
