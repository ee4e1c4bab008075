from datetime import date, time
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError

from ..domain.errors import ForbiddenError, InvalidInputError, NotFoundError, RestaurantInUseError
from ..domain.repositories import ReservationRepository, RestaurantRepository
from ..domain.services import Identity
from ..models import Restaurant, UserRole
from ..utils.time import local_today, utc_now_naive

ALL_CUISINES = "All"
FEATURED_LIMIT = 3


def _validate_listing(*, total_seats: int, opening_time: time, closing_time: time, price_per_seat: Decimal) -> None:
    if total_seats < 1:
        raise InvalidInputError("Total seats must be a positive number")
    if price_per_seat < 0:
        raise InvalidInputError("Price per seat must be a non-negative number")
    if opening_time > closing_time:
        raise InvalidInputError("Opening time must not be after closing time")


def _ensure_owner(restaurant: Restaurant, identity: Identity) -> None:
    if identity.role != UserRole.OWNER or restaurant.owner_id != identity.user_id:
        raise ForbiddenError("You do not own this restaurant")


async def get_restaurant(restaurant_repo: RestaurantRepository, *, restaurant_id: int) -> Restaurant:
    restaurant = await restaurant_repo.get(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    return restaurant


async def search_restaurants(
    restaurant_repo: RestaurantRepository,
    *,
    search: str | None = None,
    cuisine: str | None = None,
) -> list[Restaurant]:
    """Public listing ordered by name. ``search`` matches name, city, location or address."""
    search = (search or "").strip() or None
    if cuisine == ALL_CUISINES:
        cuisine = None
    return await restaurant_repo.search(search=search, cuisine=cuisine or None)


async def featured_restaurants(restaurant_repo: RestaurantRepository, *, limit: int = FEATURED_LIMIT) -> list[Restaurant]:
    """Highest rated first, ties broken by name."""
    return await restaurant_repo.featured(limit)


async def list_owned_restaurants(
    restaurant_repo: RestaurantRepository,
    res_repo: ReservationRepository,
    *,
    identity: Identity,
    today: date | None = None,
) -> list[tuple[Restaurant, int]]:
    """The owner's restaurants, each with its count of upcoming active reservations."""
    if identity.role != UserRole.OWNER:
        raise ForbiddenError("Only owners can access their restaurants")
    restaurants = await restaurant_repo.list_by_owner(identity.user_id)
    counts = await res_repo.count_active_since(
        [restaurant.id for restaurant in restaurants],
        since=today or local_today(),
    )
    return [(restaurant, counts.get(restaurant.id, 0)) for restaurant in restaurants]


async def create_restaurant(
    restaurant_repo: RestaurantRepository,
    *,
    identity: Identity,
    name: str,
    total_seats: int,
    opening_time: time,
    closing_time: time,
    price_per_seat: Decimal,
    details: dict[str, Any] | None = None,
) -> Restaurant:
    if identity.role != UserRole.OWNER:
        raise ForbiddenError("Only owners can create restaurants")
    _validate_listing(
        total_seats=total_seats,
        opening_time=opening_time,
        closing_time=closing_time,
        price_per_seat=price_per_seat,
    )
    return await restaurant_repo.create(
        owner_id=identity.user_id,
        name=name,
        total_seats=total_seats,
        opening_time=opening_time,
        closing_time=closing_time,
        price_per_seat=price_per_seat,
        details=details or {},
    )


async def update_restaurant(
    restaurant_repo: RestaurantRepository,
    *,
    restaurant_id: int,
    identity: Identity,
    changes: dict[str, Any],
) -> Restaurant:
    """
    Apply owner edits. Reservations keep the price they were booked at; only
    new admissions see a changed ``price_per_seat``.
    """
    restaurant = await get_restaurant(restaurant_repo, restaurant_id=restaurant_id)
    _ensure_owner(restaurant, identity)
    merged = {
        "total_seats": changes.get("total_seats", restaurant.total_seats),
        "opening_time": changes.get("opening_time", restaurant.opening_time),
        "closing_time": changes.get("closing_time", restaurant.closing_time),
        "price_per_seat": changes.get("price_per_seat", restaurant.price_per_seat),
    }
    _validate_listing(**merged)
    for field, value in changes.items():
        setattr(restaurant, field, value)
    restaurant.updated_at = utc_now_naive()
    return await restaurant_repo.update(restaurant)


async def delete_restaurant(
    restaurant_repo: RestaurantRepository,
    *,
    restaurant_id: int,
    identity: Identity,
) -> None:
    restaurant = await get_restaurant(restaurant_repo, restaurant_id=restaurant_id)
    _ensure_owner(restaurant, identity)
    try:
        await restaurant_repo.delete(restaurant)
    except IntegrityError as exc:
        raise RestaurantInUseError("restaurant has reservations") from exc
