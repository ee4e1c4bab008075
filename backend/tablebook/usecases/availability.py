from typing import Any, Dict, List

from ..domain.calendar import DEFAULT_SLOT_WIDTH, generate_slots, parse_calendar_date
from ..domain.errors import NotFoundError
from ..domain.repositories import ReservationRepository, RestaurantRepository
from ..domain.services import available_seats


async def list_availability(
    restaurant_repo: RestaurantRepository,
    res_repo: ReservationRepository,
    *,
    restaurant_id: int,
    date_value: str,
    slot_width: int = DEFAULT_SLOT_WIDTH,
) -> List[Dict[str, Any]]:
    """
    Every slot the restaurant's hours allow on ``date_value`` with its free seats.
    Past slots are included; read-only and lock-free.
    """
    day = parse_calendar_date(date_value)
    restaurant = await restaurant_repo.get(restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")

    reserved = await res_repo.reserved_by_slot(restaurant_id, day)
    items: List[Dict[str, Any]] = []
    for slot in generate_slots(restaurant.opening_time, restaurant.closing_time, slot_width):
        items.append(
            {
                "slot": slot.index,
                "available_seats": available_seats(restaurant.total_seats, reserved.get(slot.index, 0)),
                "display_time": slot.label,
            }
        )
    return items
