from datetime import date, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from .domain.calendar import DEFAULT_SLOT_WIDTH, display_label
from .models import Reservation, ReservationStatus, Restaurant


class SlotAvailability(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    slot: int
    available_seats: int
    display_time: str


class ReservationCreate(BaseModel):
    restaurant_id: int = Field(ge=1)
    date: str
    time_slot: int
    party_size: int


class ReservationRead(BaseModel):
    reservation_id: int
    restaurant_id: int
    restaurant_name: Optional[str] = None
    user_id: int
    date: date
    time_slot: int
    display_time: Optional[str] = None
    party_size: int
    total_price: Decimal
    status: ReservationStatus
    contact_info: str
    customer_name: str

    @field_serializer("total_price")
    def _ser_price(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(
        cls,
        *,
        reservation: Reservation,
        restaurant: Optional[Restaurant] = None,
        slot_width: int = DEFAULT_SLOT_WIDTH,
    ) -> "ReservationRead":
        display_time = None
        if restaurant is not None:
            display_time = display_label(reservation.time_slot, restaurant.opening_time, slot_width)
        return cls(
            reservation_id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            restaurant_name=restaurant.name if restaurant is not None else None,
            user_id=reservation.user_id,
            date=reservation.date,
            time_slot=reservation.time_slot,
            display_time=display_time,
            party_size=reservation.party_size,
            total_price=reservation.total_price,
            status=reservation.status,
            contact_info=reservation.contact_info,
            customer_name=reservation.customer_name,
        )


class RestaurantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    cuisine: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    image: Optional[str] = Field(default=None, max_length=500)
    total_seats: int = Field(ge=1)
    opening_time: time
    closing_time: time
    price_per_seat: Decimal = Field(ge=0, max_digits=10, decimal_places=2)


class RestaurantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    cuisine: Optional[str] = None
    description: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    image: Optional[str] = Field(default=None, max_length=500)
    total_seats: Optional[int] = Field(default=None, ge=1)
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None
    price_per_seat: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class RestaurantRead(BaseModel):
    restaurant_id: int
    owner_id: int
    name: str
    cuisine: Optional[str]
    description: Optional[str]
    city: Optional[str]
    address: Optional[str]
    location: Optional[str]
    image: Optional[str]
    rating: Decimal
    total_seats: int
    opening_time: time
    closing_time: time
    price_per_seat: Decimal

    @field_serializer("price_per_seat")
    def _ser_price(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @field_serializer("rating")
    def _ser_rating(self, value: Decimal) -> float:
        return float(value)

    @classmethod
    def from_db(cls, *, restaurant: Restaurant) -> "RestaurantRead":
        return cls(
            restaurant_id=restaurant.id,
            owner_id=restaurant.owner_id,
            name=restaurant.name,
            cuisine=restaurant.cuisine,
            description=restaurant.description,
            city=restaurant.city,
            address=restaurant.address,
            location=restaurant.location,
            image=restaurant.image,
            rating=restaurant.rating,
            total_seats=restaurant.total_seats,
            opening_time=restaurant.opening_time,
            closing_time=restaurant.closing_time,
            price_per_seat=restaurant.price_per_seat,
        )


class OwnedRestaurantRead(RestaurantRead):
    upcoming_reservations: int

    @classmethod
    def from_owned(cls, *, restaurant: Restaurant, upcoming_reservations: int) -> "OwnedRestaurantRead":
        base = RestaurantRead.from_db(restaurant=restaurant)
        return cls(**dict(base), upcoming_reservations=upcoming_reservations)
