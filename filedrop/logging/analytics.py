"""
Конфигурация логирования для доступа к файлам и аналитики скачиваний.

Сообщения на русском языке, контекст передаётся через extra,
уровни зависят от типа операции.
"""

import logging
from uuid import UUID


class AnalyticsLogger:
    """Специализированный логгер для доступа к файлам и аналитики."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("filedrop.analytics")
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настройка логгера."""
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def log_download_recorded(
        self,
        file_id: UUID,
        method: str,
        shared_link_id: UUID | None = None,
    ) -> None:
        """Логирование записи скачивания."""
        context = {
            "file_id": str(file_id),
            "download_method": method,
            "shared_link_id": str(shared_link_id) if shared_link_id else None,
        }
        self.logger.info(f"Скачивание записано: {method}", extra=context)

    def log_access_denied(
        self, file_id: UUID | None, method: str, reason: str
    ) -> None:
        """Логирование отказа политики доступа."""
        context = {
            "file_id": str(file_id) if file_id else None,
            "download_method": method,
            "reason": reason,
        }
        self.logger.warning(f"Доступ к файлу запрещён: {reason}", extra=context)

    def log_share_not_found(self, method: str) -> None:
        """Логирование обращения к несуществующей ссылке."""
        self.logger.info(
            f"Ссылка не найдена ({method})", extra={"download_method": method}
        )

    def log_partial_failure(self, file_id: UUID, operation: str, error: Exception) -> None:
        """Файл отдан, но запись события не удалась."""
        context = {
            "file_id": str(file_id),
            "operation": operation,
            "error_type": error.__class__.__name__,
        }
        self.logger.error(
            f"Файл отдан без записи события в операции '{operation}': {error}",
            extra=context,
        )

    def log_metrics_calculation(
        self,
        metric_type: str,
        user_id: UUID,
        period: str,
        duration_ms: float,
    ) -> None:
        """Логирование расчета метрик."""
        context = {
            "metric_type": metric_type,
            "user_id": str(user_id),
            "period": period,
            "duration_ms": duration_ms,
        }
        self.logger.info(
            f"Метрики рассчитаны: {metric_type} за {period}", extra=context
        )

    def log_data_access(self, user_id: UUID, data_type: str, record_count: int) -> None:
        """Логирование доступа к данным."""
        context = {
            "user_id": str(user_id),
            "data_type": data_type,
            "record_count": record_count,
        }
        self.logger.info(
            f"Доступ к данным: {data_type} ({record_count} записей)", extra=context
        )

    def log_realtime_dispatch(self, owner_id: str, subscribers: int, via: str) -> None:
        """Логирование рассылки realtime-уведомления."""
        context = {"owner_id": owner_id, "subscribers": subscribers, "via": via}
        self.logger.debug(
            f"Уведомление о скачивании разослано ({via}): {subscribers} подписчиков",
            extra=context,
        )

    def log_refresh(self, view: str, user_id: str, reason: str) -> None:
        """Логирование обновления представления дашборда."""
        context = {"view": view, "user_id": user_id, "reason": reason}
        self.logger.debug(f"Обновление '{view}' ({reason})", extra=context)

    def log_performance_warning(
        self, operation: str, duration_ms: float, threshold_ms: float = 1000
    ) -> None:
        """Логирование предупреждения о производительности."""
        context = {
            "operation": operation,
            "duration_ms": duration_ms,
            "threshold_ms": threshold_ms,
        }
        self.logger.warning(
            f"Медленная операция: {operation} заняла {duration_ms:.2f}мс (порог: {threshold_ms}мс)",
            extra=context,
        )

    def log_cache_hit(self, cache_key: str, operation: str) -> None:
        """Логирование попадания в кэш."""
        context = {"cache_key": cache_key, "operation": operation}
        self.logger.debug(f"Попадание в кэш: {operation}", extra=context)

    def log_cache_miss(self, cache_key: str, operation: str) -> None:
        """Логирование промаха кэша."""
        context = {"cache_key": cache_key, "operation": operation}
        self.logger.debug(f"Промах кэша: {operation}", extra=context)


# Глобальный экземпляр логгера
analytics_logger = AnalyticsLogger()
