"""Booking state machine and models."""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from seatbook.ride import Ride, RideStatus, money


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(BaseModel):
    """One passenger's reservation of seats on a ride."""

    booking_id: str
    passenger_id: str
    ride_id: str
    seats_booked: int = Field(ge=1)
    total_price: Decimal = Field(ge=0)
    status: BookingStatus = Field(default=BookingStatus.CONFIRMED)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None

    @field_validator("total_price", mode="before")
    @classmethod
    def normalize_total(cls, v: object) -> Decimal:
        return money(v)  # type: ignore[arg-type]

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED


def compute_total_price(seats: int, price: Decimal) -> Decimal:
    return money(price * seats)


def can_modify(booking: Booking, ride: Ride, now: datetime, cutoff_minutes: int = 0) -> bool:
    """Whether the passenger may still edit or cancel the booking.

    The booking must be confirmed, the ride active, and departure further
    away than the configured cutoff.
    """
    if not booking.is_confirmed or ride.status != RideStatus.ACTIVE:
        return False
    return ride.departure_time - now > timedelta(minutes=cutoff_minutes)
