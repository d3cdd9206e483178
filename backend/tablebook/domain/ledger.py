from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..models import ReservationStatus
from ..utils.time import format_time, parse_local_date, parse_local_time

_STATUS_ALIASES = {
    "confirmed": ReservationStatus.CONFIRMED,
    "canceled": ReservationStatus.CANCELED,
    "cancelled": ReservationStatus.CANCELED,
    "blocked": ReservationStatus.BLOCKED,
    "unavailable": ReservationStatus.BLOCKED,
}


def parse_status(raw: object) -> Optional[ReservationStatus]:
    if isinstance(raw, ReservationStatus):
        return raw
    if not isinstance(raw, str):
        return None
    return _STATUS_ALIASES.get(raw.strip().lower())


def normalize_slot(raw: object) -> Optional[str]:
    parsed = parse_local_time(raw)
    return format_time(parsed) if parsed is not None else None


def normalize_date(raw: object) -> Optional[str]:
    parsed = parse_local_date(raw)
    return parsed.isoformat() if parsed is not None else None


# Columns an operator may edit from the dashboard; ids, tenant and confirmation code are read-only.
EDITABLE_FIELDS = ("name", "party_size", "contact_info", "date", "time_slot", "status")


@dataclass(frozen=True)
class SlotRecord:
    """One reservation row as read from storage. Fields are kept raw; readers normalize."""

    id: Any
    tenant_id: str
    date: Optional[str]
    time_slot: Optional[str]
    status: Optional[str]
    name: Optional[str] = None
    party_size: Optional[int] = None
    contact_info: Optional[str] = None
    confirmation_code: Optional[str] = None

    @property
    def parsed_status(self) -> Optional[ReservationStatus]:
        return parse_status(self.status)


class SlotLedger:
    """Immutable snapshot of one tenant's records for one local date."""

    def __init__(self, tenant_id: str, date: str, records: Iterable[SlotRecord]) -> None:
        self.tenant_id = tenant_id
        self.date = date
        self.records: tuple[SlotRecord, ...] = tuple(records)

    def __len__(self) -> int:
        return len(self.records)

    def excluding(self, record_id: Any) -> "SlotLedger":
        return SlotLedger(self.tenant_id, self.date, (r for r in self.records if r.id != record_id))

    def matching(self, time_slot: str) -> list[SlotRecord]:
        """Records on this ledger's date at exactly `time_slot`; malformed rows never match."""
        wanted = normalize_slot(time_slot)
        if wanted is None:
            return []
        return [
            record
            for record in self.records
            if record.tenant_id == self.tenant_id
            and normalize_date(record.date) == self.date
            and normalize_slot(record.time_slot) == wanted
        ]

    def is_blocked(self, time_slot: str) -> bool:
        return any(r.parsed_status == ReservationStatus.BLOCKED for r in self.matching(time_slot))

    def confirmed_count(self, time_slot: str) -> int:
        return sum(1 for r in self.matching(time_slot) if r.parsed_status == ReservationStatus.CONFIRMED)
