from __future__ import annotations

import asyncio
import logging

from ..domain.events import NotificationKind, Notifier, ReservationEvent
from ..domain.ledger import SlotRecord
from ..models import ReservationStatus
from ..utils.audit_log import AuditAction, emit_audit_log

logger = logging.getLogger(__name__)

_ACTIONS: dict[NotificationKind, AuditAction] = {
    NotificationKind.CREATED: "reservation.created",
    NotificationKind.CHANGED: "reservation.changed",
    NotificationKind.CANCELED: "reservation.canceled",
    NotificationKind.UPDATED: "reservation.updated",
}


class AuditLogNotifier:
    """Writes one audit line per committed reservation event."""

    async def __call__(self, event: ReservationEvent) -> None:
        await self.notify(event.kind, event.record)

    async def notify(self, kind: NotificationKind, record: SlotRecord) -> None:
        status_from = ReservationStatus.CONFIRMED if kind == NotificationKind.CANCELED else None
        emit_audit_log(
            action=_ACTIONS[kind],
            tenant_id=record.tenant_id,
            reservation_id=record.id,
            confirmation_code=record.confirmation_code,
            date=record.date,
            time_slot=record.time_slot,
            party_size=record.party_size,
            status_from=status_from,
            status_to=record.status,
        )


class NotificationDispatcher:
    """
    Fire-and-forget delivery of reservation events.
    The caller never waits on the notifier, and a failing notifier is logged, not raised.
    """

    def __init__(self, notifier: Notifier) -> None:
        self.notifier = notifier
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, kind: NotificationKind, record: SlotRecord) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._deliver(kind, record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, kind: NotificationKind, record: SlotRecord) -> None:
        try:
            await self.notifier.notify(kind, record)
        except Exception:
            logger.exception(
                "notification %s failed for reservation %s (tenant %s)", kind, record.id, record.tenant_id
            )

    async def drain(self) -> None:
        """Wait for in-flight notifications; used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
