from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import DuplicateCodeError, ReservationNotFoundError, StorageError
from ..domain.ledger import EDITABLE_FIELDS, SlotRecord
from ..domain.policy import TenantPolicy
from ..domain.repositories import ReservationRepository, TenantRepository
from ..models import Reservation, ReservationStatus, Tenant


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_slot_record(row: Reservation) -> SlotRecord:
    return SlotRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        date=row.date,
        time_slot=row.time_slot,
        status=row.status,
        name=row.name,
        party_size=row.party_size,
        contact_info=row.contact_info,
        confirmation_code=row.confirmation_code,
    )


class SqlAlchemyTenantRepository(TenantRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, tenant_id: str) -> TenantPolicy | None:
        try:
            tenant = await self.session.scalar(select(Tenant).where(Tenant.id == tenant_id))
        except SQLAlchemyError as exc:
            raise StorageError("failed to load tenant") from exc
        if not isinstance(tenant, Tenant):
            return None
        return TenantPolicy.from_mapping(
            tenant_id=tenant.id,
            timezone=tenant.timezone,
            capacity_per_slot=tenant.capacity_per_slot,
            booking_horizon_days=tenant.booking_horizon_days,
            weekly_hours=tenant.weekly_hours,
        )


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def fetch_slot_records(self, tenant_id: str, date: str, *, for_update: bool = False) -> List[SlotRecord]:
        stmt: Select[tuple[Reservation]] = select(Reservation).where(
            Reservation.tenant_id == tenant_id, Reservation.date == date
        )
        if for_update:
            # Writers lock the day so another process cannot read it mid-booking.
            stmt = stmt.with_for_update()
        try:
            rows = (await self.session.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            raise StorageError("failed to fetch slot records") from exc
        return [to_slot_record(row) for row in rows]

    async def fetch_by_confirmation_code(self, tenant_id: str, code: str) -> SlotRecord | None:
        row = await self._get_by_code(tenant_id, code)
        return to_slot_record(row) if row is not None else None

    async def create(self, tenant_id: str, fields: Mapping[str, Any]) -> SlotRecord:
        now = _utc_now_naive()
        reservation = Reservation(
            tenant_id=tenant_id,
            date=fields["date"],
            time_slot=fields["time_slot"],
            status=str(fields.get("status", ReservationStatus.CONFIRMED)),
            name=fields.get("name"),
            party_size=fields.get("party_size"),
            contact_info=fields.get("contact_info"),
            confirmation_code=fields.get("confirmation_code"),
            created_at=now,
            updated_at=now,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(reservation)
                await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeError("confirmation code already in use") from exc
        except SQLAlchemyError as exc:
            raise StorageError("failed to create reservation") from exc
        return to_slot_record(reservation)

    async def update_status(self, record_id: Any, status: ReservationStatus) -> SlotRecord:
        reservation = await self._get(record_id)
        reservation.status = status.value
        reservation.updated_at = _utc_now_naive()
        await self._flush()
        return to_slot_record(reservation)

    async def update_slot(self, record_id: Any, date: str, time_slot: str) -> SlotRecord:
        reservation = await self._get(record_id)
        reservation.date = date
        reservation.time_slot = time_slot
        reservation.updated_at = _utc_now_naive()
        await self._flush()
        return to_slot_record(reservation)

    async def fetch_by_id(self, record_id: Any) -> SlotRecord | None:
        try:
            reservation = await self.session.get(Reservation, record_id, with_for_update=True)
        except SQLAlchemyError as exc:
            raise StorageError("failed to load reservation") from exc
        return to_slot_record(reservation) if reservation is not None else None

    async def update_fields(self, record_id: Any, fields: Mapping[str, Any]) -> SlotRecord:
        reservation = await self._get(record_id)
        for key, value in fields.items():
            if key not in EDITABLE_FIELDS:
                raise ValueError(f"{key} is not an editable reservation field")
            setattr(reservation, key, value)
        reservation.updated_at = _utc_now_naive()
        await self._flush()
        return to_slot_record(reservation)

    async def list_for_tenant(self, tenant_id: str, date: Optional[str] = None) -> List[SlotRecord]:
        stmt: Select[tuple[Reservation]] = (
            select(Reservation)
            .where(Reservation.tenant_id == tenant_id)
            .order_by(Reservation.date, Reservation.time_slot, Reservation.id)
        )
        if date is not None:
            stmt = stmt.where(Reservation.date == date)
        try:
            rows = (await self.session.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            raise StorageError("failed to list reservations") from exc
        return [to_slot_record(row) for row in rows]

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StorageError("failed to commit") from exc

    async def _get_by_code(self, tenant_id: str, code: str) -> Optional[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.tenant_id == tenant_id, Reservation.confirmation_code == code)
            .with_for_update()
        )
        try:
            result = await self.session.scalar(stmt)
        except SQLAlchemyError as exc:
            raise StorageError("failed to look up confirmation code") from exc
        return result if isinstance(result, Reservation) else None

    async def _get(self, record_id: Any) -> Reservation:
        try:
            reservation = await self.session.get(Reservation, record_id)
        except SQLAlchemyError as exc:
            raise StorageError("failed to load reservation") from exc
        if reservation is None:
            raise ReservationNotFoundError(f"reservation {record_id} not found")
        return reservation

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise StorageError("failed to write reservation") from exc
