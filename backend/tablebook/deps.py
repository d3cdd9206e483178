from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .domain.events import RefreshTracker, ReservationEventBus
from .domain.services import AvailabilityEngine
from .infrastructure.notifications import AuditLogNotifier, NotificationDispatcher
from .utils.locks import SlotLockRegistry
from .utils.time import TimeContext


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


@lru_cache
def get_engine() -> AvailabilityEngine:
    settings = get_settings()
    return AvailabilityEngine(
        TimeContext(),
        step_minutes=settings.slot_step_minutes,
        max_steps=settings.alternative_max_steps,
    )


@lru_cache
def get_refresh_tracker() -> RefreshTracker:
    return RefreshTracker()


@lru_cache
def get_event_bus() -> ReservationEventBus:
    bus = ReservationEventBus()
    bus.subscribe(AuditLogNotifier())
    bus.subscribe(get_refresh_tracker())
    return bus


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(get_event_bus())


@lru_cache
def get_slot_locks() -> SlotLockRegistry:
    return SlotLockRegistry()

