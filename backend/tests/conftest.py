import asyncio
import itertools
from contextlib import asynccontextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, AsyncIterator, Optional

import pytest
from tablebook.models import Reservation, ReservationStatus, Restaurant, User, UserRole


def _now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0)


class InMemoryStore:
    """Dict-backed stand-in for the relational store. Reads and writes yield to the loop."""

    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        self.restaurants: dict[int, Restaurant] = {}
        self.reservations: list[Reservation] = []
        self.locked_slots: list[tuple[int, date, int]] = []
        self.commits = 0
        self.rollbacks = 0
        self._ids = itertools.count(1000)
        self.user_repo = FakeUserRepo(self)
        self.restaurant_repo = FakeRestaurantRepo(self)
        self.res_repo = FakeReservationRepo(self)

    def next_id(self) -> int:
        return next(self._ids)

    def add_user(
        self,
        user_id: int,
        *,
        role: UserRole = UserRole.CUSTOMER,
        name: str = "Guest",
        email: Optional[str] = None,
    ) -> User:
        user = User(
            id=user_id,
            email=email or f"user{user_id}@example.com",
            name=name,
            role=role,
            password_hash="x",
            created_at=_now(),
            updated_at=_now(),
        )
        self.users[user_id] = user
        return user

    def add_restaurant(
        self,
        restaurant_id: int = 1,
        *,
        owner_id: int = 900,
        total_seats: int = 10,
        opening_time: time = time(0, 0),
        closing_time: time = time(23, 0),
        price_per_seat: Decimal = Decimal("25.00"),
        name: Optional[str] = None,
        cuisine: Optional[str] = None,
        city: Optional[str] = None,
        location: Optional[str] = None,
        image: Optional[str] = None,
        rating: Decimal = Decimal("0.0"),
    ) -> Restaurant:
        restaurant = Restaurant(
            id=restaurant_id,
            owner_id=owner_id,
            name=name or f"Restaurant {restaurant_id}",
            cuisine=cuisine,
            city=city,
            location=location,
            image=image,
            rating=rating,
            total_seats=total_seats,
            opening_time=opening_time,
            closing_time=closing_time,
            price_per_seat=price_per_seat,
            created_at=_now(),
            updated_at=_now(),
        )
        self.restaurants[restaurant_id] = restaurant
        return restaurant

    def add_reservation(
        self,
        *,
        restaurant_id: int = 1,
        user_id: int = 1,
        day: date = date(2024, 6, 1),
        slot_index: int = 2,
        party_size: int = 2,
        status: ReservationStatus = ReservationStatus.ACTIVE,
    ) -> Reservation:
        reservation = Reservation(
            id=self.next_id(),
            restaurant_id=restaurant_id,
            user_id=user_id,
            date=day,
            time_slot=slot_index,
            party_size=party_size,
            total_price=Decimal("0.00"),
            status=status,
            contact_info=f"user{user_id}@example.com",
            customer_name="Guest",
            created_at=_now(),
            updated_at=_now(),
        )
        self.reservations.append(reservation)
        return reservation

    def active_seats(self, restaurant_id: int, day: date, slot_index: int) -> int:
        return sum(
            r.party_size
            for r in self.reservations
            if r.restaurant_id == restaurant_id
            and r.date == day
            and r.time_slot == slot_index
            and r.status == ReservationStatus.ACTIVE
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        saved = list(self.reservations)
        try:
            yield
        except BaseException:
            self.reservations[:] = saved
            self.rollbacks += 1
            raise
        self.commits += 1


class FakeUserRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get(self, user_id: int) -> Optional[User]:
        return self.store.users.get(user_id)


class FakeRestaurantRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.fail_delete: Optional[Exception] = None
        self.last_search: Optional[tuple[Optional[str], Optional[str]]] = None

    async def get(self, restaurant_id: int) -> Optional[Restaurant]:
        await asyncio.sleep(0)
        return self.store.restaurants.get(restaurant_id)

    async def search(self, *, search: Optional[str] = None, cuisine: Optional[str] = None) -> list[Restaurant]:
        self.last_search = (search, cuisine)
        rows = list(self.store.restaurants.values())
        if search:
            needle = search.lower()
            rows = [
                r for r in rows if any(needle in (v or "").lower() for v in (r.name, r.city, r.location, r.address))
            ]
        if cuisine:
            rows = [r for r in rows if r.cuisine == cuisine]
        return sorted(rows, key=lambda r: (r.name, r.id))

    async def featured(self, limit: int) -> list[Restaurant]:
        rows = sorted(self.store.restaurants.values(), key=lambda r: (-r.rating, r.name, r.id))
        return rows[:limit]

    async def list_by_owner(self, owner_id: int) -> list[Restaurant]:
        rows = [r for r in self.store.restaurants.values() if r.owner_id == owner_id]
        return sorted(rows, key=lambda r: (r.name, r.id))

    async def create(self, *, owner_id: int, details: dict[str, Any], **fields: Any) -> Restaurant:
        restaurant = Restaurant(
            id=self.store.next_id(),
            owner_id=owner_id,
            rating=Decimal("0.0"),
            created_at=_now(),
            updated_at=_now(),
            **fields,
            **details,
        )
        self.store.restaurants[restaurant.id] = restaurant
        return restaurant

    async def update(self, restaurant: Restaurant) -> Restaurant:
        return restaurant

    async def delete(self, restaurant: Restaurant) -> None:
        if self.fail_delete is not None:
            raise self.fail_delete
        del self.store.restaurants[restaurant.id]


class FakeReservationRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.lock_error: Optional[Exception] = None
        self.load_error: Optional[Exception] = None

    async def lock_slot(self, restaurant_id: int, day: date, slot_index: int) -> bool:
        if self.lock_error is not None:
            raise self.lock_error
        if restaurant_id not in self.store.restaurants:
            return False
        self.store.locked_slots.append((restaurant_id, day, slot_index))
        return True

    async def sum_reserved(self, restaurant_id: int, day: date, slot_index: int) -> int:
        await asyncio.sleep(0)
        return self.store.active_seats(restaurant_id, day, slot_index)

    async def reserved_by_slot(self, restaurant_id: int, day: date) -> dict[int, int]:
        totals: dict[int, int] = {}
        for r in self.store.reservations:
            if r.restaurant_id == restaurant_id and r.date == day and r.status == ReservationStatus.ACTIVE:
                totals[r.time_slot] = totals.get(r.time_slot, 0) + r.party_size
        return totals

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
    ) -> Reservation:
        await asyncio.sleep(0)
        reservation = Reservation(
            id=self.store.next_id(),
            restaurant_id=restaurant_id,
            user_id=user_id,
            date=day,
            time_slot=slot_index,
            party_size=party_size,
            total_price=total_price,
            status=ReservationStatus.ACTIVE,
            contact_info=contact_info,
            customer_name=customer_name,
            created_at=_now(),
            updated_at=_now(),
        )
        self.store.reservations.append(reservation)
        return reservation

    async def get_with_owner_for_update(self, reservation_id: int) -> Optional[tuple[Reservation, int]]:
        if self.load_error is not None:
            raise self.load_error
        for r in self.store.reservations:
            if r.id == reservation_id:
                return r, self.store.restaurants[r.restaurant_id].owner_id
        return None

    async def cancel(self, reservation: Reservation) -> Reservation:
        return reservation

    async def list_by_user(self, user_id: int) -> list[Reservation]:
        rows = [r for r in self.store.reservations if r.user_id == user_id]
        for r in rows:
            r.restaurant = self.store.restaurants.get(r.restaurant_id)
        return sorted(rows, key=lambda r: (r.date, r.time_slot, r.id))

    async def list_by_restaurant(
        self,
        restaurant_id: int,
        *,
        since: date,
        status: Optional[ReservationStatus] = None,
    ) -> list[Reservation]:
        rows = [
            r
            for r in self.store.reservations
            if r.restaurant_id == restaurant_id and r.date >= since and (status is None or r.status == status)
        ]
        return sorted(rows, key=lambda r: (r.date, r.time_slot, r.id))

    async def count_active_since(self, restaurant_ids: list[int], *, since: date) -> dict[int, int]:
        counts: dict[int, int] = {}
        for r in self.store.reservations:
            if r.restaurant_id in restaurant_ids and r.status == ReservationStatus.ACTIVE and r.date >= since:
                counts[r.restaurant_id] = counts.get(r.restaurant_id, 0) + 1
        return counts


class DummySession:
    """Minimal async session stub that supports `async with session.begin()`."""

    def __init__(self) -> None:
        self.begun = 0

    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        self.begun += 1
        return self


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def dummy_session() -> DummySession:
    return DummySession()
