from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..models import ReservationStatus
from .ledger import SlotRecord
from .policy import TenantPolicy


class TenantRepository(Protocol):
    async def get(self, tenant_id: str) -> TenantPolicy | None: ...


class ReservationRepository(Protocol):
    async def fetch_slot_records(
        self, tenant_id: str, date: str, *, for_update: bool = False
    ) -> Sequence[SlotRecord]: ...

    async def fetch_by_confirmation_code(self, tenant_id: str, code: str) -> SlotRecord | None: ...

    async def create(self, tenant_id: str, fields: Mapping[str, Any]) -> SlotRecord: ...

    async def update_status(self, record_id: Any, status: ReservationStatus) -> SlotRecord: ...

    async def update_slot(self, record_id: Any, date: str, time_slot: str) -> SlotRecord: ...

    async def fetch_by_id(self, record_id: Any) -> SlotRecord | None: ...

    async def update_fields(self, record_id: Any, fields: Mapping[str, Any]) -> SlotRecord: ...

    async def list_for_tenant(self, tenant_id: str, date: Optional[str] = None) -> Sequence[SlotRecord]: ...

    async def commit(self) -> None: ...
