from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Awaitable, Callable, Protocol

from .ledger import SlotRecord

logger = logging.getLogger(__name__)


class NotificationKind(StrEnum):
    CREATED = "created"
    CHANGED = "changed"
    CANCELED = "canceled"
    UPDATED = "updated"


@dataclass(frozen=True)
class ReservationEvent:
    kind: NotificationKind
    record: SlotRecord

    @property
    def tenant_id(self) -> str:
        return self.record.tenant_id


class Notifier(Protocol):
    async def notify(self, kind: NotificationKind, record: SlotRecord) -> None: ...


Subscriber = Callable[[ReservationEvent], Awaitable[None]]


class ReservationEventBus:
    """Fans committed reservation events out to subscribers. Implements `Notifier`."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = asyncio.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    async def notify(self, kind: NotificationKind, record: SlotRecord) -> None:
        await self.publish(ReservationEvent(kind=kind, record=record))

    async def publish(self, event: ReservationEvent) -> None:
        async with self._lock:
            subscribers = list(self._subscribers)
        failures = 0
        for subscriber in subscribers:
            try:
                await subscriber(event)
            except Exception:
                failures += 1
                logger.exception("subscriber failed for %s event on tenant %s", event.kind, event.tenant_id)
        if failures:
            raise RuntimeError(f"{failures} subscriber(s) failed for {event.kind} event")


class RefreshTracker:
    """Remembers which tenants saw reservation changes since their dashboard last asked."""

    def __init__(self) -> None:
        self._pending: set[str] = set()
        self._lock = asyncio.Lock()

    async def __call__(self, event: ReservationEvent) -> None:
        async with self._lock:
            self._pending.add(event.tenant_id)

    async def consume(self, tenant_id: str) -> bool:
        async with self._lock:
            if tenant_id in self._pending:
                self._pending.discard(tenant_id)
                return True
            return False
