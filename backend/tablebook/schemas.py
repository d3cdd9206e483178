from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .domain.ledger import SlotRecord
from .domain.policy import OpeningHours
from .domain.services import AvailabilityDecision, AvailabilityOutcome
from .usecases.reservations import FieldUpdateOutcome


class ReservationCreate(BaseModel):
    # Presence is checked by the booking workflow so every missing field is reported at once.
    name: Optional[str] = None
    party_size: Optional[int] = None
    contact_info: Optional[str] = None
    date: Optional[str] = None
    time_slot: Optional[str] = None


class ReservationChange(BaseModel):
    confirmation_code: Optional[str] = None
    new_date: Optional[str] = None
    new_time_slot: Optional[str] = None


class ReservationCancel(BaseModel):
    confirmation_code: Optional[str] = None


class ReservationFieldsUpdate(BaseModel):
    # Unknown keys, including confirmation_code, are ignored.
    name: Optional[str] = None
    party_size: Optional[int] = None
    contact_info: Optional[str] = None
    date: Optional[str] = None
    time_slot: Optional[str] = None
    status: Optional[str] = None


class ReservationUpdateItem(BaseModel):
    record_id: Optional[int] = None
    updated_fields: ReservationFieldsUpdate = Field(default_factory=ReservationFieldsUpdate)


class ReservationUpdateBatch(BaseModel):
    updates: List[ReservationUpdateItem] = Field(default_factory=list)


class AvailabilityCheck(BaseModel):
    date: Optional[str] = None
    time_slot: Optional[str] = None


class AlternativesRead(BaseModel):
    before: Optional[str] = None
    after: Optional[str] = None


class OpeningHoursRead(BaseModel):
    open: str
    close: str


class AvailabilityRead(BaseModel):
    outcome: AvailabilityOutcome
    available: bool
    date: str
    time_slot: str
    remaining_capacity: int = Field(ge=0)
    alternatives: Optional[AlternativesRead] = None
    opening_hours: Optional[OpeningHoursRead] = None

    @classmethod
    def from_decision(
        cls,
        decision: AvailabilityDecision,
        *,
        opening_hours: Optional[OpeningHours] = None,
    ) -> "AvailabilityRead":
        alternatives = None
        if decision.alternatives is not None:
            alternatives = AlternativesRead(
                before=decision.alternatives.before,
                after=decision.alternatives.after,
            )
        hours = None
        if opening_hours is not None:
            hours = OpeningHoursRead(open=opening_hours.open, close=opening_hours.close)
        return cls(
            outcome=decision.outcome,
            available=decision.available,
            date=decision.date,
            time_slot=decision.time_slot,
            remaining_capacity=max(decision.remaining_capacity, 0),
            alternatives=alternatives,
            opening_hours=hours,
        )


class ReservationRead(BaseModel):
    reservation_id: Any
    tenant_id: str
    confirmation_code: Optional[str]
    status: Optional[str]
    date: Optional[str]
    time_slot: Optional[str]
    name: Optional[str] = None
    party_size: Optional[int] = None
    contact_info: Optional[str] = None

    @classmethod
    def from_record(cls, record: SlotRecord) -> "ReservationRead":
        status = record.parsed_status
        return cls(
            reservation_id=record.id,
            tenant_id=record.tenant_id,
            confirmation_code=record.confirmation_code,
            status=status.value if status is not None else record.status,
            date=record.date,
            time_slot=record.time_slot,
            name=record.name,
            party_size=record.party_size,
            contact_info=record.contact_info,
        )


class BookingRead(BaseModel):
    outcome: AvailabilityOutcome = AvailabilityOutcome.AVAILABLE
    confirmation_code: Optional[str]
    remaining_capacity: Optional[int] = None
    reservation: ReservationRead


class CancelRead(BaseModel):
    confirmation_code: Optional[str]
    reservation: ReservationRead


class RefreshRead(BaseModel):
    refresh: bool


class UpdateOutcomeRead(BaseModel):
    record_id: Any
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None
    reservation: Optional[ReservationRead] = None

    @classmethod
    def from_outcome(cls, outcome: FieldUpdateOutcome) -> "UpdateOutcomeRead":
        if outcome.error is not None:
            return cls(
                record_id=outcome.record_id,
                success=False,
                error=outcome.error.code.value,
                message=str(outcome.error),
            )
        return cls(
            record_id=outcome.record_id,
            success=True,
            reservation=ReservationRead.from_record(outcome.record) if outcome.record is not None else None,
        )
