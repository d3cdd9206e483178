from typing import List

import pytest
from tablebook.domain.events import NotificationKind, RefreshTracker, ReservationEvent, ReservationEventBus
from tablebook.domain.ledger import SlotRecord


def _record(tenant_id: str = "bistro") -> SlotRecord:
    return SlotRecord(id=1, tenant_id=tenant_id, date="2025-07-06", time_slot="18:00", status="confirmed")


@pytest.mark.asyncio
async def test_bus_fans_out_to_subscribers() -> None:
    bus = ReservationEventBus()
    seen: List[ReservationEvent] = []

    async def collect(event: ReservationEvent) -> None:
        seen.append(event)

    bus.subscribe(collect)
    await bus.notify(NotificationKind.CREATED, _record())
    assert [e.kind for e in seen] == [NotificationKind.CREATED]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery() -> None:
    bus = ReservationEventBus()
    seen: List[ReservationEvent] = []

    async def collect(event: ReservationEvent) -> None:
        seen.append(event)

    unsubscribe = bus.subscribe(collect)
    unsubscribe()
    await bus.notify(NotificationKind.CANCELED, _record())
    assert seen == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_starve_others() -> None:
    bus = ReservationEventBus()
    seen: List[ReservationEvent] = []

    async def broken(event: ReservationEvent) -> None:
        raise ValueError("boom")

    async def collect(event: ReservationEvent) -> None:
        seen.append(event)

    bus.subscribe(broken)
    bus.subscribe(collect)
    with pytest.raises(RuntimeError):
        await bus.notify(NotificationKind.CHANGED, _record())
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_refresh_tracker_is_consumed_once_per_tenant() -> None:
    bus = ReservationEventBus()
    tracker = RefreshTracker()
    bus.subscribe(tracker)

    await bus.notify(NotificationKind.CREATED, _record("bistro"))

    assert await tracker.consume("diner") is False
    assert await tracker.consume("bistro") is True
    assert await tracker.consume("bistro") is False
