from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Any, List, Optional, Tuple, cast

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..domain.repositories import ReservationRepository, RestaurantRepository, UserRepository
from ..models import Reservation, ReservationStatus, Restaurant, SlotLock, User
from ..utils.time import utc_now_naive


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)


class SqlAlchemyRestaurantRepository(RestaurantRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, restaurant_id: int) -> Restaurant | None:
        result = await self.session.scalar(select(Restaurant).where(Restaurant.id == restaurant_id))
        return result if isinstance(result, Restaurant) else None

    async def search(self, *, search: str | None = None, cuisine: str | None = None) -> List[Restaurant]:
        stmt = select(Restaurant)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Restaurant.name.ilike(pattern),
                    Restaurant.city.ilike(pattern),
                    Restaurant.location.ilike(pattern),
                    Restaurant.address.ilike(pattern),
                )
            )
        if cuisine:
            stmt = stmt.where(Restaurant.cuisine == cuisine)
        stmt = stmt.order_by(Restaurant.name, Restaurant.id)
        return list((await self.session.scalars(stmt)).all())

    async def featured(self, limit: int) -> List[Restaurant]:
        stmt = select(Restaurant).order_by(Restaurant.rating.desc(), Restaurant.name, Restaurant.id).limit(limit)
        return list((await self.session.scalars(stmt)).all())

    async def list_by_owner(self, owner_id: int) -> List[Restaurant]:
        stmt = select(Restaurant).where(Restaurant.owner_id == owner_id).order_by(Restaurant.name, Restaurant.id)
        return list((await self.session.scalars(stmt)).all())

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
    ) -> Restaurant:
        now = utc_now_naive()
        restaurant = Restaurant(
            owner_id=owner_id,
            name=name,
            total_seats=total_seats,
            opening_time=opening_time,
            closing_time=closing_time,
            price_per_seat=price_per_seat,
            rating=Decimal("0.0"),
            created_at=now,
            updated_at=now,
            **details,
        )
        self.session.add(restaurant)
        await self.session.flush()
        return restaurant

    async def update(self, restaurant: Restaurant) -> Restaurant:
        self.session.add(restaurant)
        await self.session.flush()
        return restaurant

    async def delete(self, restaurant: Restaurant) -> None:
        await self.session.delete(restaurant)
        await self.session.flush()


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_slot(self, restaurant_id: int, day: date, slot_index: int) -> bool:
        """Take a row lock on the slot's ledger row, creating the row on first use.

        Returns False when no row can exist for the key, i.e. the restaurant is unknown.
        """
        stmt = (
            select(SlotLock)
            .where(
                SlotLock.restaurant_id == restaurant_id,
                SlotLock.date == day,
                SlotLock.slot_index == slot_index,
            )
            .with_for_update()
        )
        if await self.session.scalar(stmt) is not None:
            return True
        try:
            async with self.session.begin_nested():
                self.session.add(
                    SlotLock(
                        restaurant_id=restaurant_id,
                        date=day,
                        slot_index=slot_index,
                        created_at=utc_now_naive(),
                    )
                )
        except IntegrityError:
            # Either a concurrent insert won the primary key or the restaurant
            # foreign key failed; the re-select tells the two apart.
            pass
        return await self.session.scalar(stmt) is not None

    async def sum_reserved(self, restaurant_id: int, day: date, slot_index: int) -> int:
        stmt = select(func.coalesce(func.sum(Reservation.party_size), 0)).where(
            Reservation.restaurant_id == restaurant_id,
            Reservation.date == day,
            Reservation.time_slot == slot_index,
            Reservation.status == ReservationStatus.ACTIVE,
        )
        return int(await self.session.scalar(stmt) or 0)

    async def reserved_by_slot(self, restaurant_id: int, day: date) -> dict[int, int]:
        stmt: Select[Tuple[int, Any]] = (
            select(Reservation.time_slot, func.sum(Reservation.party_size))
            .where(
                Reservation.restaurant_id == restaurant_id,
                Reservation.date == day,
                Reservation.status == ReservationStatus.ACTIVE,
            )
            .group_by(Reservation.time_slot)
        )
        rows = await self.session.execute(stmt)
        return {int(slot): int(reserved or 0) for slot, reserved in rows.all()}

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
        now = utc_now_naive()
        reservation = Reservation(
            restaurant_id=restaurant_id,
            user_id=user_id,
            date=day,
            time_slot=slot_index,
            party_size=party_size,
            total_price=total_price,
            status=ReservationStatus.ACTIVE,
            contact_info=contact_info,
            customer_name=customer_name,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def get_with_owner_for_update(self, reservation_id: int) -> Optional[Tuple[Reservation, int]]:
        stmt: Select[Tuple[Reservation, int]] = (
            select(Reservation, Restaurant.owner_id)
            .join(Restaurant, Reservation.restaurant_id == Restaurant.id)
            .where(Reservation.id == reservation_id)
            .with_for_update(of=Reservation)
        )
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, int]], row)

    async def cancel(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def list_by_user(self, user_id: int) -> List[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .options(selectinload(Reservation.restaurant))
            .order_by(Reservation.date, Reservation.time_slot, Reservation.id)
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_by_restaurant(
        self,
        restaurant_id: int,
        *,
        since: date,
        status: ReservationStatus | None = None,
    ) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.restaurant_id == restaurant_id,
            Reservation.date >= since,
        )
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        stmt = stmt.order_by(Reservation.date, Reservation.time_slot, Reservation.id)
        return list((await self.session.scalars(stmt)).all())

    async def count_active_since(self, restaurant_ids: List[int], *, since: date) -> dict[int, int]:
        if not restaurant_ids:
            return {}
        stmt: Select[Tuple[int, int]] = (
            select(Reservation.restaurant_id, func.count(Reservation.id))
            .where(
                Reservation.restaurant_id.in_(restaurant_ids),
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.date >= since,
            )
            .group_by(Reservation.restaurant_id)
        )
        rows = await self.session.execute(stmt)
        return {int(restaurant_id): int(count) for restaurant_id, count in rows.all()}
