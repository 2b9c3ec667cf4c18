"""
Обновление представлений дашборда по таймеру и по push-уведомлениям.

У каждого представления свой ViewRefresher. Таймер и уведомление вызывают
один и тот же refresh(); уведомления, пришедшие в окне debounce, сливаются
в один пересчёт.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from filedrop.core.config import settings
from filedrop.logging.analytics import analytics_logger
from filedrop.services.analytics_aggregation import TimePeriod, parse_period
from filedrop.services.analytics_service import AnalyticsService
from filedrop.websocket.events import (
    create_analytics_update_event,
    create_download_event,
)
from filedrop.websocket.notifier import RealtimeNotifier, Subscription

logger = logging.getLogger(__name__)

RefreshFunc = Callable[[str, str], Awaitable[None]]
SendFunc = Callable[[dict[str, Any]], Awaitable[Any]]


class ViewRefresher:
    """Цикл пересчёта одного представления"""

    def __init__(
        self,
        name: str,
        interval: float,
        refresh: RefreshFunc,
        debounce: float = 0.0,
    ) -> None:
        self.name = name
        self.interval = interval
        self.debounce = debounce
        self._refresh = refresh
        self._trigger = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.refresh_count = 0

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    def notify(self) -> None:
        """Запросить внеочередной пересчёт"""
        self._trigger.set()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        await self.refresh("initial")
        while True:
            try:
                await asyncio.wait_for(self._trigger.wait(), timeout=self.interval)
                reason = "push"
                if self.debounce > 0:
                    await asyncio.sleep(self.debounce)
            except TimeoutError:
                reason = "timer"
            self._trigger.clear()
            await self.refresh(reason)

    async def refresh(self, reason: str) -> None:
        self.refresh_count += 1
        try:
            await self._refresh(self.name, reason)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Ошибка обновления представления {self.name}")


class AnalyticsRefresher:
    """Набор обновляемых представлений для одной сессии дашборда"""

    def __init__(
        self,
        user_id: UUID,
        send: SendFunc,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: RealtimeNotifier,
        period: TimePeriod = TimePeriod.DAY,
        intervals: dict[str, float] | None = None,
        debounce: float | None = None,
    ) -> None:
        self.user_id = user_id
        self.send = send
        self.session_factory = session_factory
        self.notifier = notifier
        self.period = period
        self._subscription: Subscription | None = None

        intervals = intervals or {
            "summary": settings.ANALYTICS_REFRESH_SECONDS,
            "timeseries": settings.ANALYTICS_REFRESH_SECONDS,
            "comparison": settings.ANALYTICS_REFRESH_SECONDS,
            "heatmap": settings.HEATMAP_REFRESH_SECONDS,
        }
        debounce = settings.REALTIME_DEBOUNCE_SECONDS if debounce is None else debounce
        self.views = {
            name: ViewRefresher(name, interval, self.refresh_view, debounce)
            for name, interval in intervals.items()
        }

    def start(self) -> None:
        self._subscription = self.notifier.subscribe(self.user_id, self.on_download)
        for view in self.views.values():
            view.start()

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        for view in self.views.values():
            await view.stop()

    async def on_download(self, payload: dict[str, Any]) -> None:
        """Новое скачивание: отправить событие и запросить пересчёт всех представлений"""
        await self.send(create_download_event(payload, self.user_id).model_dump())
        self.notify_all()

    def notify_all(self) -> None:
        for view in self.views.values():
            view.notify()

    def set_period(self, period: str) -> None:
        self.period = parse_period(period)
        if "timeseries" in self.views:
            self.views["timeseries"].notify()

    async def compute(self, view: str) -> dict[str, Any]:
        """Полный пересчёт представления из журнала"""
        async with self.session_factory() as db:
            service = AnalyticsService(db)
            if view == "summary":
                result = await service.get_summary(self.user_id, use_cache=False)
            elif view == "timeseries":
                result = await service.get_time_series(
                    self.user_id, self.period, use_cache=False
                )
            elif view == "comparison":
                result = await service.get_comparison(self.user_id, use_cache=False)
            elif view == "heatmap":
                result = await service.get_heatmap(self.user_id, use_cache=False)
            else:
                raise ValueError(f"Неизвестное представление: {view}")
        return result.model_dump(mode="json")

    async def refresh_view(self, view: str, reason: str) -> None:
        analytics_logger.log_refresh(view, str(self.user_id), reason)
        data = await self.compute(view)
        event = create_analytics_update_event(view, data, reason, self.user_id)
        await self.send(event.model_dump())
