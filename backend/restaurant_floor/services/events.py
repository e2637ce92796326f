"""
Доменные события зала (order_created, order_closed, table_status_changed, dish_quantity_updated,
bill_generated). Доставка best-effort: ошибка подписчика логируется и не ломает запрос.
Наружу события уходят вебхуком (EVENTS_WEBHOOK_URL), если он задан.
"""
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from restaurant_floor.config import settings
from restaurant_floor.core.logging_config import get_logger

logger = get_logger(__name__)

ORDER_CREATED = "order_created"
ORDER_CLOSED = "order_closed"
TABLE_STATUS_CHANGED = "table_status_changed"
DISH_QUANTITY_UPDATED = "dish_quantity_updated"
BILL_GENERATED = "bill_generated"

Subscriber = Callable[[str, dict], Awaitable[Any]]


class EventBus:
    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def publish(self, event: str, payload: dict) -> None:
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event, payload)
            except Exception as e:
                logger.exception("Событие %s не доставлено подписчику %r: %s", event, subscriber, e)


class WebhookSubscriber:
    """POST {"event", "payload"} на внешний адрес."""

    def __init__(self, url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def __call__(self, event: str, payload: dict) -> None:
        async with httpx.AsyncClient(transport=self.transport) as client:
            r = await client.post(self.url, json={"event": event, "payload": payload}, timeout=self.timeout)
            if r.status_code >= 400:
                logger.warning("Вебхук событий %s: %s %s", event, r.status_code, r.text)


_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    global _bus

    if _bus is None:
        _bus = EventBus()
        if settings.events_webhook_url:
            _bus.subscribe(WebhookSubscriber(settings.events_webhook_url))
    return _bus
