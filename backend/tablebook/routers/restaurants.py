from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_identity, get_session
from ..domain.errors import ReservationDomainError
from ..domain.services import Identity
from ..infrastructure.repositories import SqlAlchemyReservationRepository, SqlAlchemyRestaurantRepository
from ..schemas import OwnedRestaurantRead, RestaurantCreate, RestaurantRead, RestaurantUpdate
from ..usecases import restaurants as restaurant_usecase
from .errors import http_error

router = APIRouter(prefix="/restaurants", tags=["restaurants"])
me_router = APIRouter(prefix="/me", tags=["restaurants"])

_DETAIL_FIELDS = ("cuisine", "description", "city", "address", "location", "image")


@router.get("", response_model=List[RestaurantRead])
async def search_restaurants(
    search: Optional[str] = Query(default=None, max_length=255),
    cuisine: Optional[str] = Query(default=None, max_length=100),
    session: AsyncSession = Depends(get_session),
) -> list[RestaurantRead]:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    rows = await restaurant_usecase.search_restaurants(restaurant_repo, search=search, cuisine=cuisine)
    return [RestaurantRead.from_db(restaurant=restaurant) for restaurant in rows]


@router.get("/featured", response_model=List[RestaurantRead])
async def featured_restaurants(session: AsyncSession = Depends(get_session)) -> list[RestaurantRead]:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    rows = await restaurant_usecase.featured_restaurants(restaurant_repo)
    return [RestaurantRead.from_db(restaurant=restaurant) for restaurant in rows]


@me_router.get("/restaurants", response_model=List[OwnedRestaurantRead])
async def list_my_restaurants(
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
) -> list[OwnedRestaurantRead]:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        rows = await restaurant_usecase.list_owned_restaurants(restaurant_repo, res_repo, identity=identity)
    except ReservationDomainError as exc:
        raise http_error(exc)
    return [
        OwnedRestaurantRead.from_owned(restaurant=restaurant, upcoming_reservations=count)
        for restaurant, count in rows
    ]


@router.get("/{restaurant_id}", response_model=RestaurantRead)
async def get_restaurant(
    restaurant_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> RestaurantRead:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    try:
        restaurant = await restaurant_usecase.get_restaurant(restaurant_repo, restaurant_id=restaurant_id)
    except ReservationDomainError as exc:
        raise http_error(exc)
    return RestaurantRead.from_db(restaurant=restaurant)


@router.post("", response_model=RestaurantRead, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    payload: RestaurantCreate,
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
) -> RestaurantRead:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    try:
        async with session.begin():
            restaurant = await restaurant_usecase.create_restaurant(
                restaurant_repo,
                identity=identity,
                name=payload.name,
                total_seats=payload.total_seats,
                opening_time=payload.opening_time,
                closing_time=payload.closing_time,
                price_per_seat=payload.price_per_seat,
                details={field: getattr(payload, field) for field in _DETAIL_FIELDS},
            )
    except ReservationDomainError as exc:
        raise http_error(exc)
    return RestaurantRead.from_db(restaurant=restaurant)


@router.put("/{restaurant_id}", response_model=RestaurantRead)
async def update_restaurant(
    payload: RestaurantUpdate,
    restaurant_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
) -> RestaurantRead:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    try:
        async with session.begin():
            restaurant = await restaurant_usecase.update_restaurant(
                restaurant_repo,
                restaurant_id=restaurant_id,
                identity=identity,
                changes=payload.model_dump(exclude_unset=True, exclude_none=True),
            )
    except ReservationDomainError as exc:
        raise http_error(exc)
    return RestaurantRead.from_db(restaurant=restaurant)


@router.delete("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_restaurant(
    restaurant_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    restaurant_repo = SqlAlchemyRestaurantRepository(session)
    try:
        async with session.begin():
            await restaurant_usecase.delete_restaurant(
                restaurant_repo,
                restaurant_id=restaurant_id,
                identity=identity,
            )
    except ReservationDomainError as exc:
        raise http_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
