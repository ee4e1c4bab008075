from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_current_identity, get_session, get_slot_locks
from ..domain.errors import ReservationDomainError, UnavailableError
from ..domain.services import Identity, ReservationBucket
from ..infrastructure.locks import SlotLockRegistry
from ..infrastructure.repositories import (
    SqlAlchemyReservationRepository,
    SqlAlchemyRestaurantRepository,
    SqlAlchemyUserRepository,
)
from ..schemas import ReservationCreate, ReservationRead
from ..usecases import reservations as reservation_usecase
from .errors import http_error

router = APIRouter(prefix="", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    slot_locks: SlotLockRegistry = Depends(get_slot_locks),
    settings: Settings = Depends(get_settings),
) -> ReservationRead:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    user_repo = SqlAlchemyUserRepository(session)
    try:
        request = reservation_usecase.validate_booking(
            identity=identity,
            restaurant_id=payload.restaurant_id,
            date_value=payload.date,
            slot_index=payload.time_slot,
            party_size=payload.party_size,
            slot_width=settings.slot_width_minutes,
        )
        reservation, restaurant = await reservation_usecase.admit_reservation(
            restaurant_repo,
            res_repo,
            user_repo,
            locks=slot_locks,
            transaction=session.begin,
            request=request,
            lock_timeout=settings.admission_lock_timeout,
            slot_width=settings.slot_width_minutes,
        )
    except ReservationDomainError as exc:
        raise http_error(exc)

    return ReservationRead.from_db(
        reservation=reservation,
        restaurant=restaurant,
        slot_width=settings.slot_width_minutes,
    )


@router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        async with session.begin():
            await reservation_usecase.cancel_reservation(
                res_repo,
                reservation_id=reservation_id,
                identity=identity,
            )
    except ReservationDomainError as exc:
        raise http_error(exc)
    except (OperationalError, PoolTimeoutError) as exc:
        # Commit-time failures surface here, after the use case returned.
        raise http_error(UnavailableError("storage unavailable")) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me/reservations", response_model=List[ReservationRead])
async def list_my_reservations(
    scope: Optional[str] = Query(default="upcoming", pattern="^(upcoming|past|cancelled|all)$"),
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    settings: Settings = Depends(get_settings),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    bucket = None if scope in (None, "all") else ReservationBucket(scope)
    rows = await reservation_usecase.list_user_reservations(res_repo, user_id=identity.user_id, scope=bucket)
    return [
        ReservationRead.from_db(reservation=res, restaurant=res.restaurant, slot_width=settings.slot_width_minutes)
        for res in rows
    ]


@router.get("/restaurants/{restaurant_id}/reservations", response_model=List[ReservationRead])
async def list_restaurant_reservations(
    restaurant_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    settings: Settings = Depends(get_settings),
) -> list[ReservationRead]:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        restaurant, rows = await reservation_usecase.list_restaurant_reservations(
            restaurant_repo,
            res_repo,
            restaurant_id=restaurant_id,
            identity=identity,
        )
    except ReservationDomainError as exc:
        raise http_error(exc)
    return [
        ReservationRead.from_db(reservation=res, restaurant=restaurant, slot_width=settings.slot_width_minutes)
        for res in rows
    ]
