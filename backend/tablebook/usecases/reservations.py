from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence, cast

from ..domain.errors import (
    AlreadyCanceledError,
    BookingError,
    CannotCancelBlockedError,
    CannotChangeBlockedError,
    DuplicateCodeError,
    InvalidInputError,
    NotFoundError,
    ReservationNotFoundError,
    SlotUnavailableError,
    TenantNotFoundError,
)
from ..domain.events import NotificationKind
from ..domain.ledger import EDITABLE_FIELDS, SlotLedger, SlotRecord, normalize_date, normalize_slot, parse_status
from ..domain.policy import TenantPolicy
from ..domain.repositories import ReservationRepository, TenantRepository
from ..domain.services import AvailabilityDecision, AvailabilityEngine
from ..domain.workflow import OperationState, OperationTrace
from ..infrastructure.notifications import NotificationDispatcher
from ..models import ReservationStatus
from ..utils.confirmation import generate_confirmation_code
from ..utils.locks import SlotLockRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingResult:
    record: SlotRecord
    trace: OperationTrace
    decision: Optional[AvailabilityDecision] = None
    remaining_capacity: Optional[int] = None


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def clean_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def require_tenant_id(tenant_id: Optional[str]) -> str:
    if _blank(tenant_id):
        raise InvalidInputError("tenant id is required", missing=["tenant_id"])
    return clean_text(tenant_id)


def require_fields(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if _blank(value)]
    if missing:
        raise InvalidInputError("missing required fields", missing=missing)


async def load_policy(tenant_repo: TenantRepository, tenant_id: str) -> TenantPolicy:
    policy = await tenant_repo.get(tenant_id)
    if policy is None:
        raise TenantNotFoundError(f"tenant {tenant_id} not found")
    return policy


async def create_reservation(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    engine: AvailabilityEngine,
    dispatcher: NotificationDispatcher,
    locks: SlotLockRegistry,
    tenant_id: Optional[str],
    name: Optional[str],
    party_size: Optional[int],
    contact_info: Optional[str],
    date: Optional[str],
    time_slot: Optional[str],
    code_length: int = 9,
    code_attempts: int = 3,
    trace: Optional[OperationTrace] = None,
) -> BookingResult:
    trace = trace or OperationTrace("create", tenant_id)
    try:
        tenant_id = require_tenant_id(tenant_id)
        require_fields(
            name=name,
            party_size=party_size if party_size and party_size >= 1 else None,
            contact_info=contact_info,
            date=date,
            time_slot=time_slot,
        )
        policy = await load_policy(tenant_repo, tenant_id)
        trace.advance(OperationState.VALIDATED)

        slot_date = normalize_date(date) or clean_text(date)
        slot_time = normalize_slot(time_slot) or clean_text(time_slot)
        instant = engine.time_context.parse(date, time_slot, policy.timezone)
        screened = engine.screen(instant, slot_date, slot_time, policy)
        if screened is not None:
            trace.advance(OperationState.EVALUATED)
            raise SlotUnavailableError(screened)
        instant = cast(datetime, instant)

        async with locks.hold(tenant_id, slot_date, slot_time):
            records = await res_repo.fetch_slot_records(tenant_id, slot_date, for_update=True)
            ledger = SlotLedger(tenant_id, slot_date, records)
            decision = engine.assess(instant, slot_date, slot_time, policy, ledger)
            trace.advance(OperationState.EVALUATED)
            if not decision.available:
                raise SlotUnavailableError(decision)

            fields = {
                "name": clean_text(name),
                "party_size": party_size,
                "contact_info": clean_text(contact_info),
                "date": slot_date,
                "time_slot": slot_time,
                "status": ReservationStatus.CONFIRMED,
            }
            record = await _create_with_code(res_repo, tenant_id, fields, code_length, code_attempts)
            await res_repo.commit()
        trace.advance(OperationState.COMMITTED)
    except BookingError:
        trace.reject()
        raise

    logger.info("reservation %s booked for tenant %s at %s %s", record.id, tenant_id, slot_date, slot_time)
    dispatcher.dispatch(NotificationKind.CREATED, record)
    trace.advance(OperationState.SIDE_EFFECTS_DISPATCHED)
    return BookingResult(
        record=record,
        trace=trace,
        decision=decision,
        remaining_capacity=decision.remaining_capacity - 1,
    )


async def _create_with_code(
    res_repo: ReservationRepository,
    tenant_id: str,
    fields: dict[str, Any],
    code_length: int,
    attempts: int,
) -> SlotRecord:
    attempt = 1
    while True:
        code = generate_confirmation_code(code_length)
        try:
            return await res_repo.create(tenant_id, {**fields, "confirmation_code": code})
        except DuplicateCodeError:
            if attempt >= attempts:
                raise
            logger.warning("confirmation code collision for tenant %s (attempt %d)", tenant_id, attempt)
            attempt += 1


async def change_reservation(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    engine: AvailabilityEngine,
    dispatcher: NotificationDispatcher,
    locks: SlotLockRegistry,
    tenant_id: Optional[str],
    confirmation_code: Optional[str],
    new_date: Optional[str],
    new_time_slot: Optional[str],
    trace: Optional[OperationTrace] = None,
) -> BookingResult:
    trace = trace or OperationTrace("change", tenant_id)
    try:
        tenant_id = require_tenant_id(tenant_id)
        require_fields(confirmation_code=confirmation_code, new_date=new_date, new_time_slot=new_time_slot)
        policy = await load_policy(tenant_repo, tenant_id)
        code = clean_text(confirmation_code)
        current = await res_repo.fetch_by_confirmation_code(tenant_id, code)
        if current is None:
            raise ReservationNotFoundError(f"no reservation for confirmation code {code}")
        if current.parsed_status == ReservationStatus.CANCELED:
            raise AlreadyCanceledError("reservation is already canceled")
        if current.parsed_status == ReservationStatus.BLOCKED:
            raise CannotChangeBlockedError("blocked slots are held by the restaurant and cannot be moved")
        trace.advance(OperationState.VALIDATED)

        slot_date = normalize_date(new_date) or clean_text(new_date)
        slot_time = normalize_slot(new_time_slot) or clean_text(new_time_slot)
        instant = engine.time_context.parse(new_date, new_time_slot, policy.timezone)
        screened = engine.screen(instant, slot_date, slot_time, policy)
        if screened is not None:
            trace.advance(OperationState.EVALUATED)
            raise SlotUnavailableError(screened)
        instant = cast(datetime, instant)

        async with locks.hold(tenant_id, slot_date, slot_time):
            records = await res_repo.fetch_slot_records(tenant_id, slot_date, for_update=True)
            # The reservation being moved must not count against its own target slot.
            ledger = SlotLedger(tenant_id, slot_date, records).excluding(current.id)
            decision = engine.assess(instant, slot_date, slot_time, policy, ledger)
            trace.advance(OperationState.EVALUATED)
            if not decision.available:
                raise SlotUnavailableError(decision)

            record = await res_repo.update_slot(current.id, slot_date, slot_time)
            await res_repo.commit()
        trace.advance(OperationState.COMMITTED)
    except BookingError:
        trace.reject()
        raise

    logger.info(
        "reservation %s moved from %s %s to %s %s",
        record.id,
        current.date,
        current.time_slot,
        slot_date,
        slot_time,
    )
    dispatcher.dispatch(NotificationKind.CHANGED, record)
    trace.advance(OperationState.SIDE_EFFECTS_DISPATCHED)
    return BookingResult(
        record=record,
        trace=trace,
        decision=decision,
        remaining_capacity=decision.remaining_capacity - 1,
    )


async def cancel_reservation(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    dispatcher: NotificationDispatcher,
    tenant_id: Optional[str],
    confirmation_code: Optional[str],
    trace: Optional[OperationTrace] = None,
) -> BookingResult:
    trace = trace or OperationTrace("cancel", tenant_id)
    try:
        tenant_id = require_tenant_id(tenant_id)
        require_fields(confirmation_code=confirmation_code)
        await load_policy(tenant_repo, tenant_id)
        code = clean_text(confirmation_code)
        current = await res_repo.fetch_by_confirmation_code(tenant_id, code)
        if current is None:
            raise ReservationNotFoundError(f"no reservation for confirmation code {code}")
        trace.advance(OperationState.VALIDATED)

        status = current.parsed_status
        trace.advance(OperationState.EVALUATED)
        if status == ReservationStatus.CANCELED:
            raise AlreadyCanceledError("reservation is already canceled")
        if status == ReservationStatus.BLOCKED:
            raise CannotCancelBlockedError("blocked slots are not guest reservations")

        record = await res_repo.update_status(current.id, ReservationStatus.CANCELED)
        await res_repo.commit()
        trace.advance(OperationState.COMMITTED)
    except BookingError:
        trace.reject()
        raise

    logger.info("reservation %s canceled for tenant %s", record.id, tenant_id)
    dispatcher.dispatch(NotificationKind.CANCELED, record)
    trace.advance(OperationState.SIDE_EFFECTS_DISPATCHED)
    return BookingResult(record=record, trace=trace)


async def list_reservations(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    tenant_id: Optional[str],
    date: Optional[str] = None,
) -> Sequence[SlotRecord]:
    tenant_id = require_tenant_id(tenant_id)
    await load_policy(tenant_repo, tenant_id)
    if date is None:
        return await res_repo.list_for_tenant(tenant_id)
    day = normalize_date(date)
    if day is None:
        raise InvalidInputError("date must be YYYY-MM-DD")
    return await res_repo.list_for_tenant(tenant_id, day)


@dataclass(frozen=True)
class FieldUpdate:
    record_id: Any
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class FieldUpdateOutcome:
    record_id: Any
    record: Optional[SlotRecord] = None
    error: Optional[BookingError] = None

    @property
    def success(self) -> bool:
        return self.error is None


def clean_operator_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Keep editable columns only, normalized; read-only keys such as the confirmation code are dropped."""
    cleaned: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key == "date":
            value = normalize_date(value)
        elif key == "time_slot":
            value = normalize_slot(value)
        elif key == "status":
            status = parse_status(value)
            value = status.value if status is not None else None
        elif key == "party_size":
            valid = isinstance(value, int) and not isinstance(value, bool) and value >= 1
            value = value if valid else None
        else:
            value = clean_text(value) or None
        if value is None:
            raise InvalidInputError(f"invalid value for {key}", missing=[key])
        cleaned[key] = value
    if not cleaned:
        raise InvalidInputError("no editable fields in update")
    return cleaned


async def update_reservations(
    tenant_repo: TenantRepository,
    res_repo: ReservationRepository,
    *,
    dispatcher: NotificationDispatcher,
    tenant_id: Optional[str],
    updates: Sequence[FieldUpdate],
    trace: Optional[OperationTrace] = None,
) -> list[FieldUpdateOutcome]:
    """
    Apply dashboard edits record by record.

    Edits skip the availability engine: the operator may overbook a slot or
    mark it blocked. A record that is malformed or belongs to another tenant is
    reported in its outcome and the remaining edits still apply.
    """
    trace = trace or OperationTrace("update", tenant_id)
    try:
        tenant_id = require_tenant_id(tenant_id)
        if not updates:
            raise InvalidInputError("at least one update is required", missing=["updates"])
        await load_policy(tenant_repo, tenant_id)
        trace.advance(OperationState.VALIDATED)

        outcomes = [await _apply_update(res_repo, tenant_id, update) for update in updates]
        trace.advance(OperationState.EVALUATED)
        applied = [outcome.record for outcome in outcomes if outcome.record is not None]
        if applied:
            await res_repo.commit()
            trace.advance(OperationState.COMMITTED)
        else:
            trace.reject()
    except BookingError:
        trace.reject()
        raise

    for record in applied:
        dispatcher.dispatch(NotificationKind.UPDATED, record)
    if applied:
        trace.advance(OperationState.SIDE_EFFECTS_DISPATCHED)
    logger.info("operator updated %d of %d reservations for tenant %s", len(applied), len(outcomes), tenant_id)
    return outcomes


async def _apply_update(res_repo: ReservationRepository, tenant_id: str, update: FieldUpdate) -> FieldUpdateOutcome:
    try:
        if _blank(update.record_id):
            raise InvalidInputError("record id is required", missing=["record_id"])
        fields = clean_operator_fields(update.fields or {})
        current = await res_repo.fetch_by_id(update.record_id)
        # Records of other tenants are reported as missing.
        if current is None or current.tenant_id != tenant_id:
            raise ReservationNotFoundError(f"reservation {update.record_id} not found")
        record = await res_repo.update_fields(current.id, fields)
    except (InvalidInputError, NotFoundError) as exc:
        logger.warning("operator update of reservation %s rejected: %s", update.record_id, exc)
        return FieldUpdateOutcome(record_id=update.record_id, error=exc)
    return FieldUpdateOutcome(record_id=update.record_id, record=record)
