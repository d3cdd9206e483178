from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..deps import get_dispatcher, get_engine, get_refresh_tracker, get_session, get_slot_locks
from ..domain.errors import BookingError
from ..domain.events import RefreshTracker
from ..domain.services import AvailabilityEngine
from ..infrastructure.notifications import NotificationDispatcher
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyTenantRepository
from ..schemas import (
    BookingRead,
    CancelRead,
    RefreshRead,
    ReservationCancel,
    ReservationChange,
    ReservationCreate,
    ReservationRead,
    ReservationUpdateBatch,
    UpdateOutcomeRead,
)
from ..usecases import reservations as reservation_usecase
from ..utils.locks import SlotLockRegistry
from .errors import to_http_exception

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["reservations"])


@router.post("/reservations", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    tenant_id: str,
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    engine: AvailabilityEngine = Depends(get_engine),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    locks: SlotLockRegistry = Depends(get_slot_locks),
) -> BookingRead:
    settings = get_settings()
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        result = await reservation_usecase.create_reservation(
            tenant_repo,
            res_repo,
            engine=engine,
            dispatcher=dispatcher,
            locks=locks,
            tenant_id=tenant_id,
            name=payload.name,
            party_size=payload.party_size,
            contact_info=payload.contact_info,
            date=payload.date,
            time_slot=payload.time_slot,
            code_length=settings.confirmation_code_length,
            code_attempts=settings.confirmation_code_attempts,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return BookingRead(
        confirmation_code=result.record.confirmation_code,
        remaining_capacity=result.remaining_capacity,
        reservation=ReservationRead.from_record(result.record),
    )


@router.post("/reservations/change", response_model=BookingRead)
async def change_reservation(
    tenant_id: str,
    payload: ReservationChange,
    session: AsyncSession = Depends(get_session),
    engine: AvailabilityEngine = Depends(get_engine),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    locks: SlotLockRegistry = Depends(get_slot_locks),
) -> BookingRead:
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        result = await reservation_usecase.change_reservation(
            tenant_repo,
            res_repo,
            engine=engine,
            dispatcher=dispatcher,
            locks=locks,
            tenant_id=tenant_id,
            confirmation_code=payload.confirmation_code,
            new_date=payload.new_date,
            new_time_slot=payload.new_time_slot,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return BookingRead(
        confirmation_code=result.record.confirmation_code,
        remaining_capacity=result.remaining_capacity,
        reservation=ReservationRead.from_record(result.record),
    )


@router.post("/reservations/cancel", response_model=CancelRead)
async def cancel_reservation(
    tenant_id: str,
    payload: ReservationCancel,
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> CancelRead:
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        result = await reservation_usecase.cancel_reservation(
            tenant_repo,
            res_repo,
            dispatcher=dispatcher,
            tenant_id=tenant_id,
            confirmation_code=payload.confirmation_code,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    return CancelRead(
        confirmation_code=result.record.confirmation_code,
        reservation=ReservationRead.from_record(result.record),
    )


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(
    tenant_id: str,
    date: Optional[str] = Query(default=None, description="Tenant-local date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
) -> list[ReservationRead]:
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        records = await reservation_usecase.list_reservations(tenant_repo, res_repo, tenant_id=tenant_id, date=date)
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [ReservationRead.from_record(record) for record in records]


@router.patch("/reservations", response_model=List[UpdateOutcomeRead])
async def update_reservations(
    tenant_id: str,
    payload: ReservationUpdateBatch,
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> list[UpdateOutcomeRead]:
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    updates = [
        reservation_usecase.FieldUpdate(
            record_id=item.record_id,
            fields=item.updated_fields.model_dump(exclude_unset=True),
        )
        for item in payload.updates
    ]
    try:
        outcomes = await reservation_usecase.update_reservations(
            tenant_repo,
            res_repo,
            dispatcher=dispatcher,
            tenant_id=tenant_id,
            updates=updates,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [UpdateOutcomeRead.from_outcome(outcome) for outcome in outcomes]

@router.get("/refresh", response_model=RefreshRead)
async def consume_refresh(
    tenant_id: str,
    tracker: RefreshTracker = Depends(get_refresh_tracker),
) -> RefreshRead:
    return RefreshRead(refresh=await tracker.consume(tenant_id))
