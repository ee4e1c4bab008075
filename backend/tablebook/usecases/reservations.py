from __future__ import annotations

from datetime import date
from typing import Any, AsyncContextManager, Callable

from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ..domain.calendar import DEFAULT_SLOT_WIDTH, generate_slots, is_past, max_slot_index, parse_calendar_date
from ..domain.errors import ForbiddenError, InvalidInputError, NotFoundError, UnavailableError
from ..domain.repositories import ReservationRepository, RestaurantRepository, UserRepository
from ..domain.services import (
    BookingRequest,
    Identity,
    ReservationBucket,
    SlotKey,
    SlotSnapshot,
    classify_reservation,
    ensure_can_cancel,
    total_price,
    validate_admission,
)
from ..infrastructure.locks import SlotLockRegistry
from ..models import Reservation, ReservationStatus, Restaurant, UserRole
from ..utils.audit_log import emit_audit_log
from ..utils.time import local_today, utc_now_naive


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_booking(
    *,
    identity: Identity,
    restaurant_id: int,
    date_value: str,
    slot_index: int,
    party_size: int,
    slot_width: int = DEFAULT_SLOT_WIDTH,
    today: date | None = None,
) -> BookingRequest:
    """Role and input checks that need no storage."""
    if identity.role != UserRole.CUSTOMER:
        raise ForbiddenError("Only customers can make reservations")
    if not _is_int(party_size) or party_size <= 0:
        raise InvalidInputError("Invalid party size")
    if not _is_int(slot_index) or not 0 <= slot_index <= max_slot_index(slot_width):
        raise InvalidInputError("Invalid time slot")
    day = parse_calendar_date(date_value)
    if is_past(day, today=today):
        raise InvalidInputError("Reservation date is in the past")
    return BookingRequest(
        key=SlotKey(restaurant_id=restaurant_id, date=day, slot_index=slot_index),
        party_size=party_size,
        user_id=identity.user_id,
    )


async def admit_reservation(
    restaurant_repo: RestaurantRepository,
    res_repo: ReservationRepository,
    user_repo: UserRepository,
    *,
    locks: SlotLockRegistry,
    transaction: Callable[[], AsyncContextManager[Any]],
    request: BookingRequest,
    lock_timeout: float,
    slot_width: int = DEFAULT_SLOT_WIDTH,
) -> tuple[Reservation, Restaurant]:
    """
    Admit a validated booking or reject it without writing anything.

    The capacity recheck and the insert run under the in-process lock for the
    slot key and inside one transaction holding the slot's row lock, so two
    admissions for the same key can never both see the same free seats.
    """
    key = request.key
    try:
        async with locks.hold(key, timeout=lock_timeout):
            async with transaction():
                # Lock before any plain read so the transaction snapshot postdates it.
                slot_locked = await res_repo.lock_slot(key.restaurant_id, key.date, key.slot_index)

                restaurant = await restaurant_repo.get(key.restaurant_id)
                if not slot_locked or restaurant is None:
                    raise NotFoundError("Restaurant not found")
                open_slots = generate_slots(restaurant.opening_time, restaurant.closing_time, slot_width)
                if key.slot_index not in {slot.index for slot in open_slots}:
                    raise InvalidInputError("Time slot is outside opening hours")

                reserved = await res_repo.sum_reserved(key.restaurant_id, key.date, key.slot_index)
                validate_admission(
                    SlotSnapshot(total_seats=restaurant.total_seats, reserved=reserved),
                    party_size=request.party_size,
                )

                user = await user_repo.get(request.user_id)
                if user is None:
                    raise NotFoundError("User not found")

                reservation = await res_repo.create(
                    restaurant_id=key.restaurant_id,
                    user_id=request.user_id,
                    day=key.date,
                    slot_index=key.slot_index,
                    party_size=request.party_size,
                    total_price=total_price(request.party_size, restaurant.price_per_seat),
                    contact_info=user.email,
                    customer_name=user.name,
                )
                emit_audit_log(
                    action="reservation.created",
                    initiator="customer",
                    reservation=reservation,
                    actor_id=request.user_id,
                )
    except (OperationalError, PoolTimeoutError) as exc:
        raise UnavailableError("storage unavailable") from exc
    return reservation, restaurant


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    identity: Identity,
) -> Reservation:
    try:
        row = await res_repo.get_with_owner_for_update(reservation_id)
        if row is None:
            raise NotFoundError("Reservation not found")
        reservation, owner_id = row
        ensure_can_cancel(reservation, owner_id=owner_id, identity=identity)

        status_from = reservation.status
        reservation.status = ReservationStatus.CANCELLED
        reservation.updated_at = utc_now_naive()
        updated = await res_repo.cancel(reservation)
    except (OperationalError, PoolTimeoutError) as exc:
        raise UnavailableError("storage unavailable") from exc
    emit_audit_log(
        action="reservation.cancelled",
        initiator="owner" if identity.role == UserRole.OWNER else "customer",
        reservation=updated,
        actor_id=identity.user_id,
        status_from=status_from,
    )
    return updated


async def list_user_reservations(
    res_repo: ReservationRepository,
    *,
    user_id: int,
    scope: ReservationBucket | None = ReservationBucket.UPCOMING,
    today: date | None = None,
) -> list[Reservation]:
    """Caller's reservations in date/slot order; ``scope=None`` returns all of them."""
    rows = await res_repo.list_by_user(user_id)
    if scope is None:
        return rows
    today = today or local_today()
    return [r for r in rows if classify_reservation(r, today=today) == scope]


async def list_restaurant_reservations(
    restaurant_repo: RestaurantRepository,
    res_repo: ReservationRepository,
    *,
    restaurant_id: int,
    identity: Identity,
    today: date | None = None,
) -> tuple[Restaurant, list[Reservation]]:
    """Upcoming active bookings of a restaurant, visible to its owner only."""
    if identity.role != UserRole.OWNER:
        raise ForbiddenError("Only owners can view reservations")
    restaurant = await restaurant_repo.get(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    if restaurant.owner_id != identity.user_id:
        raise ForbiddenError("You do not own this restaurant")
    rows = await res_repo.list_by_restaurant(
        restaurant_id,
        since=today or local_today(),
        status=ReservationStatus.ACTIVE,
    )
    return restaurant, rows
