from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, Protocol

from ..models import Reservation, ReservationStatus, Restaurant, User


class UserRepository(Protocol):
    async def get(self, user_id: int) -> User | None: ...


class RestaurantRepository(Protocol):
    async def get(self, restaurant_id: int) -> Restaurant | None: ...

    async def search(self, *, search: str | None = None, cuisine: str | None = None) -> list[Restaurant]: ...

    async def featured(self, limit: int) -> list[Restaurant]: ...

    async def list_by_owner(self, owner_id: int) -> list[Restaurant]: ...

    async def create(
        self,
        *,
        owner_id: int,
        name: str,
        total_seats: int,
        opening_time: time,
        closing_time: time,
        price_per_seat: Decimal,
        details: dict[str, Any],
    ) -> Restaurant: ...

    async def update(self, restaurant: Restaurant) -> Restaurant: ...

    async def delete(self, restaurant: Restaurant) -> None: ...


class ReservationRepository(Protocol):
    async def lock_slot(self, restaurant_id: int, day: date, slot_index: int) -> bool: ...

    async def sum_reserved(self, restaurant_id: int, day: date, slot_index: int) -> int: ...

    async def reserved_by_slot(self, restaurant_id: int, day: date) -> dict[int, int]: ...

    async def create(
        self,
        *,
        restaurant_id: int,
        user_id: int,
        day: date,
        slot_index: int,
        party_size: int,
        total_price: Decimal,
        contact_info: str,
        customer_name: str,
    ) -> Reservation: ...

    async def get_with_owner_for_update(self, reservation_id: int) -> tuple[Reservation, int] | None: ...

    async def cancel(self, reservation: Reservation) -> Reservation: ...

    async def list_by_user(self, user_id: int) -> list[Reservation]: ...

    async def list_by_restaurant(
        self,
        restaurant_id: int,
        *,
        since: date,
        status: ReservationStatus | None = None,
    ) -> list[Reservation]: ...

    async def count_active_since(self, restaurant_ids: list[int], *, since: date) -> dict[int, int]: ...
