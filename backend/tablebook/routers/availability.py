from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_session
from ..domain.errors import ReservationDomainError
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyRestaurantRepository
from ..schemas import SlotAvailability
from ..usecases import availability as availability_usecase
from .errors import http_error

router = APIRouter(prefix="/restaurants", tags=["availability"])


@router.get("/{restaurant_id}/availability", response_model=List[SlotAvailability])
async def list_availability(
    restaurant_id: int = Path(..., ge=1),
    date: str = Query(..., description="Calendar date, YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> list[SlotAvailability]:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        rows = await availability_usecase.list_availability(
            restaurant_repo,
            res_repo,
            restaurant_id=restaurant_id,
            date_value=date,
            slot_width=settings.slot_width_minutes,
        )
    except ReservationDomainError as exc:
        raise http_error(exc)
    return [SlotAvailability(**row) for row in rows]
