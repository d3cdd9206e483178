from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_engine, get_session
from ..domain.errors import BookingError
from ..domain.services import AvailabilityEngine
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyTenantRepository
from ..schemas import AvailabilityCheck, AvailabilityRead
from ..usecases import availability as availability_usecase
from .errors import to_http_exception

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["availability"])


@router.post("/availability", response_model=AvailabilityRead)
async def check_availability(
    tenant_id: str,
    payload: AvailabilityCheck,
    session: AsyncSession = Depends(get_session),
    engine: AvailabilityEngine = Depends(get_engine),
) -> AvailabilityRead:
    tenant_repo = SqlAlchemyTenantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        result = await availability_usecase.check_availability(
            tenant_repo,
            res_repo,
            engine=engine,
            tenant_id=tenant_id,
            date=payload.date,
            time_slot=payload.time_slot,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return AvailabilityRead.from_decision(result.decision, opening_hours=result.opening_hours)
