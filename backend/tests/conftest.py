from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pytest
from tablebook.domain.errors import DuplicateCodeError, ReservationNotFoundError, StorageError
from tablebook.domain.events import NotificationKind
from tablebook.domain.ledger import SlotRecord
from tablebook.domain.policy import TenantPolicy
from tablebook.domain.services import AvailabilityEngine
from tablebook.infrastructure.notifications import NotificationDispatcher
from tablebook.models import ReservationStatus
from tablebook.utils.locks import SlotLockRegistry
from tablebook.utils.time import TimeContext

# 2025-07-01 12:00 in Los Angeles (PDT, UTC-7).
NOW_UTC = datetime(2025, 7, 1, 19, 0, tzinfo=timezone.utc)
TENANT_ID = "bistro"


class FakeTenantRepo:
    def __init__(self, *policies: TenantPolicy) -> None:
        self.policies = {p.tenant_id: p for p in policies}
        self.calls = 0

    async def get(self, tenant_id: str) -> Optional[TenantPolicy]:
        self.calls += 1
        return self.policies.get(tenant_id)


class FakeReservationRepo:
    def __init__(self) -> None:
        self.records: Dict[int, SlotRecord] = {}
        self.fetch_calls: List[tuple[str, str]] = []
        self.locked_fetches = 0
        self.commits = 0
        self.duplicate_codes_remaining = 0
        self.fail_fetch = False
        self._next_id = 1

    def add(
        self,
        *,
        tenant_id: str = TENANT_ID,
        date: Optional[str],
        time_slot: Optional[str],
        status: Optional[str] = "confirmed",
        code: Optional[str] = None,
    ) -> SlotRecord:
        record = SlotRecord(
            id=self._next_id,
            tenant_id=tenant_id,
            date=date,
            time_slot=time_slot,
            status=status,
            name="Guest",
            party_size=2,
            contact_info="guest@example.com",
            confirmation_code=code,
        )
        self.records[record.id] = record
        self._next_id += 1
        return record

    async def fetch_slot_records(self, tenant_id: str, date: str, *, for_update: bool = False) -> List[SlotRecord]:
        self.fetch_calls.append((tenant_id, date))
        self.locked_fetches += int(for_update)
        if self.fail_fetch:
            raise StorageError("storage unavailable")
        return [r for r in self.records.values() if r.tenant_id == tenant_id and r.date == date]

    async def fetch_by_confirmation_code(self, tenant_id: str, code: str) -> Optional[SlotRecord]:
        for record in self.records.values():
            if record.tenant_id == tenant_id and record.confirmation_code == code:
                return record
        return None

    async def create(self, tenant_id: str, fields: Mapping[str, Any]) -> SlotRecord:
        if self.duplicate_codes_remaining > 0:
            self.duplicate_codes_remaining -= 1
            raise DuplicateCodeError("confirmation code already in use")
        return self.add(
            tenant_id=tenant_id,
            date=fields["date"],
            time_slot=fields["time_slot"],
            status=str(fields["status"]),
            code=fields["confirmation_code"],
        )

    async def update_status(self, record_id: Any, status: ReservationStatus) -> SlotRecord:
        record = self._get(record_id)
        updated = replace(record, status=status.value)
        self.records[record_id] = updated
        return updated

    async def update_slot(self, record_id: Any, date: str, time_slot: str) -> SlotRecord:
        record = self._get(record_id)
        updated = replace(record, date=date, time_slot=time_slot)
        self.records[record_id] = updated
        return updated

    async def fetch_by_id(self, record_id: Any) -> Optional[SlotRecord]:
        return self.records.get(record_id)

    async def update_fields(self, record_id: Any, fields: Mapping[str, Any]) -> SlotRecord:
        updated = replace(self._get(record_id), **fields)
        self.records[record_id] = updated
        return updated

    async def list_for_tenant(self, tenant_id: str, date: Optional[str] = None) -> List[SlotRecord]:
        return [
            r for r in self.records.values() if r.tenant_id == tenant_id and (date is None or r.date == date)
        ]

    async def commit(self) -> None:
        self.commits += 1

    def _get(self, record_id: Any) -> SlotRecord:
        if record_id not in self.records:
            raise ReservationNotFoundError(f"reservation {record_id} not found")
        return self.records[record_id]


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[tuple[NotificationKind, SlotRecord]] = []

    async def notify(self, kind: NotificationKind, record: SlotRecord) -> None:
        self.calls.append((kind, record))
        if self.fail:
            raise ConnectionError("mail relay down")


@pytest.fixture
def time_context() -> TimeContext:
    return TimeContext(clock=lambda: NOW_UTC)


@pytest.fixture
def engine(time_context: TimeContext) -> AvailabilityEngine:
    return AvailabilityEngine(time_context)


@pytest.fixture
def policy() -> TenantPolicy:
    return TenantPolicy(
        tenant_id=TENANT_ID,
        timezone="America/Los_Angeles",
        capacity_per_slot=2,
        booking_horizon_days=30,
    )


@pytest.fixture
def tenant_repo(policy: TenantPolicy) -> FakeTenantRepo:
    return FakeTenantRepo(policy)


@pytest.fixture
def res_repo() -> FakeReservationRepo:
    return FakeReservationRepo()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> NotificationDispatcher:
    return NotificationDispatcher(notifier)


@pytest.fixture
def locks() -> SlotLockRegistry:
    return SlotLockRegistry()
