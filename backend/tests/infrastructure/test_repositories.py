from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from tablebook.domain.errors import DuplicateCodeError, ReservationNotFoundError
from tablebook.domain.policy import OpeningHours
from tablebook.infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyTenantRepository
from tablebook.models import Base, ReservationStatus, Tenant


async def _sessions(tmp_path: Path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tablebook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sessions = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with sessions() as session:
        now = datetime(2025, 7, 1)
        session.add(
            Tenant(
                id="bistro",
                name="Bistro",
                timezone="America/Los_Angeles",
                capacity_per_slot=2,
                booking_horizon_days=30,
                weekly_hours={"Sunday": {"open": "17:00", "close": "22:00"}},
                created_at=now,
                updated_at=now,
            )
        )
        await session.commit()
    return sessions


def _fields(code: str, time_slot: str = "18:00") -> dict[str, Any]:
    return {
        "name": "Ada",
        "party_size": 2,
        "contact_info": "ada@example.com",
        "date": "2025-07-06",
        "time_slot": time_slot,
        "status": ReservationStatus.CONFIRMED,
        "confirmation_code": code,
    }


@pytest.mark.asyncio
async def test_tenant_policy_is_loaded_from_row(tmp_path: Path) -> None:
    sessions = await _sessions(tmp_path)
    async with sessions() as session:
        repo = SqlAlchemyTenantRepository(session)
        policy = await repo.get("bistro")
        missing = await repo.get("diner")

    assert policy is not None
    assert policy.capacity_per_slot == 2
    assert policy.weekly_hours == {"sunday": OpeningHours("17:00", "22:00")}
    assert missing is None


@pytest.mark.asyncio
async def test_reservation_lifecycle_round_trips(tmp_path: Path) -> None:
    sessions = await _sessions(tmp_path)
    async with sessions() as session:
        repo = SqlAlchemyReservationRepository(session)
        created = await repo.create("bistro", _fields("code00001"))
        await repo.create("bistro", _fields("code00002", time_slot="19:00"))
        await repo.commit()

    async with sessions() as session:
        repo = SqlAlchemyReservationRepository(session)
        day = await repo.fetch_slot_records("bistro", "2025-07-06")
        found = await repo.fetch_by_confirmation_code("bistro", "code00001")
        moved = await repo.update_slot(created.id, "2025-07-07", "20:00")
        canceled = await repo.update_status(created.id, ReservationStatus.CANCELED)
        await repo.commit()
        listed = await repo.list_for_tenant("bistro")
        on_day = await repo.list_for_tenant("bistro", "2025-07-06")

    assert created.status == "confirmed"
    assert [r.time_slot for r in day] == ["18:00", "19:00"]
    assert found is not None and found.id == created.id
    assert (moved.date, moved.time_slot) == ("2025-07-07", "20:00")
    assert canceled.status == "canceled"
    assert [r.confirmation_code for r in listed] == ["code00002", "code00001"]
    assert [r.confirmation_code for r in on_day] == ["code00002"]


@pytest.mark.asyncio
async def test_duplicate_code_and_unknown_ids(tmp_path: Path) -> None:
    sessions = await _sessions(tmp_path)
    async with sessions() as session:
        repo = SqlAlchemyReservationRepository(session)
        await repo.create("bistro", _fields("samecode1"))
        await repo.commit()

        with pytest.raises(DuplicateCodeError):
            await repo.create("bistro", _fields("samecode1", time_slot="19:00"))
        with pytest.raises(ReservationNotFoundError):
            await repo.update_status(9999, ReservationStatus.CANCELED)
        assert await repo.fetch_by_confirmation_code("bistro", "nothere") is None


@pytest.mark.asyncio
async def test_operator_field_updates(tmp_path: Path) -> None:
    sessions = await _sessions(tmp_path)
    async with sessions() as session:
        repo = SqlAlchemyReservationRepository(session)
        created = await repo.create("bistro", _fields("opcode001"))
        await repo.commit()

        found = await repo.fetch_by_id(created.id)
        updated = await repo.update_fields(created.id, {"status": "blocked", "party_size": 8})
        await repo.commit()
        locked_day = await repo.fetch_slot_records("bistro", "2025-07-06", for_update=True)

        with pytest.raises(ValueError):
            await repo.update_fields(created.id, {"confirmation_code": "changed"})

    assert found is not None and found.confirmation_code == "opcode001"
    assert (updated.status, updated.party_size, updated.confirmation_code) == ("blocked", 8, "opcode001")
    assert [r.status for r in locked_day] == ["blocked"]
    async with sessions() as session:
        assert await SqlAlchemyReservationRepository(session).fetch_by_id(4242) is None
