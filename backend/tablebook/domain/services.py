from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum

from ..models import Reservation, ReservationStatus, UserRole
from .errors import AlreadyCancelledError, CapacityError, ForbiddenError

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: UserRole


@dataclass(frozen=True)
class SlotKey:
    restaurant_id: int
    date: date
    slot_index: int


@dataclass(frozen=True)
class BookingRequest:
    key: SlotKey
    party_size: int
    user_id: int


@dataclass(frozen=True)
class SlotSnapshot:
    total_seats: int
    reserved: int


class ReservationBucket(StrEnum):
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"


def available_seats(total_seats: int, reserved: int) -> int:
    """Seats still free; floored at zero so over-booked history never goes negative."""
    return max(total_seats - reserved, 0)


def validate_admission(snapshot: SlotSnapshot, *, party_size: int) -> int:
    """
    Pure capacity check against freshly recomputed reserved seats.
    Returns the seats left after booking. Raises CapacityError otherwise.
    """
    if party_size <= 0:
        raise CapacityError("party_size must be positive")
    if snapshot.reserved + party_size > snapshot.total_seats:
        raise CapacityError("capacity exceeded")
    return snapshot.total_seats - snapshot.reserved - party_size


def total_price(party_size: int, price_per_seat: Decimal) -> Decimal:
    return (Decimal(party_size) * Decimal(price_per_seat)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def ensure_can_cancel(reservation: Reservation, *, owner_id: int, identity: Identity) -> None:
    """A reservation cancels once, and only by its customer or the restaurant's owner.

    The cancelled state is checked first, so repeating a cancel reports it as
    already cancelled whoever asks.
    """
    if reservation.status == ReservationStatus.CANCELLED:
        raise AlreadyCancelledError("reservation is already cancelled")
    is_customer = identity.role == UserRole.CUSTOMER and reservation.user_id == identity.user_id
    is_owner = identity.role == UserRole.OWNER and owner_id == identity.user_id
    if not (is_customer or is_owner):
        raise ForbiddenError("you cannot cancel this reservation")


def classify_reservation(reservation: Reservation, *, today: date) -> ReservationBucket:
    if reservation.status == ReservationStatus.CANCELLED:
        return ReservationBucket.CANCELLED
    if reservation.date < today:
        return ReservationBucket.PAST
    return ReservationBucket.UPCOMING
