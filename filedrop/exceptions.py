"""
Кастомные исключения для приложения
"""

from typing import Any

from fastapi import HTTPException, status


class BaseAPIException(Exception):
    """Базовое исключение API"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def code(self) -> str | None:
        """Получение кода ошибки из details"""
        return self.details.get("code")


class ValidationError(BaseAPIException):
    """Ошибка валидации"""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class NotFoundError(BaseAPIException):
    """Ресурс не найден"""

    def __init__(self, resource: str, identifier: str | None = None):
        message = f"{resource} не найден"
        if identifier:
            message += f" (ID: {identifier})"

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": identifier},
        )


class PermissionError(BaseAPIException):
    """Ошибка доступа"""

    def __init__(self, action: str, resource: str | None = None):
        message = f"Недостаточно прав для действия: {action}"
        if resource:
            message += f" над ресурсом: {resource}"

        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details={"action": action, "resource": resource},
        )


class AuthenticationError(BaseAPIException):
    """Ошибка аутентификации"""

    def __init__(self, message: str = "Ошибка аутентификации"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class ConflictError(BaseAPIException):
    """Конфликт данных"""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message, status_code=status.HTTP_409_CONFLICT, details=details
        )


class RateLimitError(BaseAPIException):
    """Превышен лимит запросов"""

    def __init__(self, limit: int, window: int):
        message = f"Превышен лимит запросов: {limit} за {window} секунд"
        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"limit": limit, "window": window},
        )


class QuotaExceededError(BaseAPIException):
    """Превышена квота"""

    def __init__(self, quota_type: str, current: int, limit: int):
        message = f"Превышена квота {quota_type}: {current}/{limit}"
        super().__init__(
            message=message,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"quota_type": quota_type, "current": current, "limit": limit},
        )


class BusinessLogicError(BaseAPIException):
    """Ошибка бизнес-логики"""

    def __init__(self, message: str, code: str | None = None):
        details = {"code": code} if code else {}
        super().__init__(
            message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details
        )


class DatabaseError(BaseAPIException):
    """Ошибка базы данных"""

    def __init__(self, message: str = "Ошибка базы данных"):
        super().__init__(
            message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class StorageError(BaseAPIException):
    """Ошибка хранилища объектов"""

    def __init__(self, message: str = "Ошибка хранилища файлов"):
        super().__init__(
            message=message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


class SubscriptionRequiredError(BaseAPIException):
    """Функция недоступна на текущем тарифе"""

    def __init__(self, feature: str, tier: str):
        super().__init__(
            message=f"Функция '{feature}' недоступна на тарифе {tier}",
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            details={"code": "SUBSCRIPTION_REQUIRED", "feature": feature, "tier": tier},
        )


# Исключения шаринга


class ShareNotFoundError(BaseAPIException):
    """
    Ссылка или код не найдены.

    Сообщение одинаковое для несуществующих, деактивированных и
    неверно набранных ссылок, чтобы не раскрывать их жизненный цикл.
    """

    def __init__(self) -> None:
        super().__init__(
            message="Ссылка не найдена или срок её действия истёк",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"code": "SHARE_NOT_FOUND"},
        )


class InvalidShareCodeError(BusinessLogicError):
    """Код не соответствует формату"""

    def __init__(self, code: str):
        super().__init__("Некорректный код доступа", code="INVALID_SHARE_CODE")
        self.details["share_code"] = code


class AccessDeniedError(BaseAPIException):
    """Отказ политики доступа к файлу"""

    reason: str = "denied"
    default_message = "Доступ к файлу запрещён"
    default_status = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str | None = None):
        super().__init__(
            message=message or self.default_message,
            status_code=self.default_status,
            details={"code": self.reason.upper(), "reason": self.reason},
        )


class LinkInactiveError(AccessDeniedError):
    """Ссылка деактивирована владельцем"""

    reason = "inactive"
    default_message = "Ссылка не найдена или срок её действия истёк"
    default_status = status.HTTP_404_NOT_FOUND


class LinkExpiredError(AccessDeniedError):
    """Срок действия ссылки истёк"""

    reason = "expired"
    default_message = "Срок действия ссылки истёк"
    default_status = status.HTTP_410_GONE


class DownloadLimitReachedError(AccessDeniedError):
    """Исчерпан лимит скачиваний"""

    reason = "limit_reached"
    default_message = "Лимит скачиваний для этой ссылки исчерпан"
    default_status = status.HTTP_410_GONE


class PasswordRequiredError(AccessDeniedError):
    """Файл защищён паролем, а пароль не передан"""

    reason = "password_required"
    default_message = "Для скачивания файла требуется пароль"
    default_status = status.HTTP_401_UNAUTHORIZED


class InvalidPasswordError(AccessDeniedError):
    """Неверный пароль"""

    reason = "invalid_password"
    default_message = "Неверный пароль"
    default_status = status.HTTP_401_UNAUTHORIZED


# Исключения аналитики


class AnalyticsError(BaseAPIException):
    """Базовое исключение для системы аналитики."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if error_code:
            merged["code"] = error_code
        super().__init__(message=message, details=merged)
        self.error_code = error_code


class AnalyticsValidationError(AnalyticsError):
    """Ошибка валидации параметров аналитики."""

    def __init__(
        self, message: str, field: str | None = None, value: Any | None = None
    ) -> None:
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message, error_code="VALIDATION_ERROR", details=details
        )
        self.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        self.field = field
        self.value = value


class NoExportDataError(AnalyticsError):
    """Нет данных для экспорта за выбранный период."""

    def __init__(self, date_range: str) -> None:
        super().__init__(
            message="Нет данных за выбранный период",
            error_code="NO_EXPORT_DATA",
            details={"date_range": date_range},
        )
        self.status_code = status.HTTP_404_NOT_FOUND


# Функции для преобразования исключений в HTTP ответы
def exception_to_http_exception(exc: BaseAPIException) -> HTTPException:
    """Преобразование кастомного исключения в HTTPException"""
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "message": exc.message,
            "details": exc.details,
            "type": exc.__class__.__name__,
        },
    )


def handle_database_error(exc: Exception) -> BaseAPIException:
    """Обработка ошибок базы данных"""
    error_message = str(exc).lower()

    if "unique constraint" in error_message or "duplicate key" in error_message:
        return ConflictError("Запись уже существует")

    if "foreign key constraint" in error_message:
        return ValidationError("Связанная запись не найдена")

    if "not null constraint" in error_message:
        return ValidationError("Обязательное поле не указано")

    return DatabaseError("Ошибка базы данных")
