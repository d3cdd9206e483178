from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..domain.errors import BookingError
from ..domain.ledger import SlotLedger, normalize_date, normalize_slot
from ..domain.policy import OpeningHours
from ..domain.repositories import ReservationRepository, TenantRepository
from ..domain.services import AvailabilityDecision, AvailabilityEngine
from ..domain.workflow import OperationState, OperationTrace
from ..utils.time import parse_local_date
from .reservations import clean_text, load_policy, require_fields, require_tenant_id


@dataclass(frozen=True)
class AvailabilityResult:
    decision: AvailabilityDecision
    trace: OperationTrace
    opening_hours: Optional[OpeningHours] = None


async def check_availability(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    engine: AvailabilityEngine,
    tenant_id: Optional[str],
    date: Optional[str],
    time_slot: Optional[str],
    trace: Optional[OperationTrace] = None,
) -> AvailabilityResult:
    """Read-only evaluation of one slot. Unavailable outcomes are returned, not raised."""
    trace = trace or OperationTrace("check", tenant_id)
    try:
        tenant_id = require_tenant_id(tenant_id)
        require_fields(date=date, time_slot=time_slot)
        policy = await load_policy(tenant_repo, tenant_id)
    except BookingError:
        trace.reject()
        raise
    trace.advance(OperationState.VALIDATED)

    slot_date = normalize_date(date) or clean_text(date)
    slot_time = normalize_slot(time_slot) or clean_text(time_slot)
    instant = engine.time_context.parse(date, time_slot, policy.timezone)
    decision = engine.screen(instant, slot_date, slot_time, policy)
    if decision is None and instant is not None:
        ledger = SlotLedger(tenant_id, slot_date, await res_repo.fetch_slot_records(tenant_id, slot_date))
        decision = engine.assess(instant, slot_date, slot_time, policy, ledger)
    trace.advance(OperationState.EVALUATED)

    local_date = parse_local_date(date)
    hours = policy.hours_for(local_date) if local_date is not None else None
    return AvailabilityResult(decision=decision, trace=trace, opening_hours=hours)
