"""Request and response models for rides."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from seatbook.booking import Booking
from seatbook.review import RatingSummary
from seatbook.ride import Ride, RideStatus


class RideCreateRequest(BaseModel):
    from_location: str
    to_location: str
    price: Decimal
    total_seats: int
    departure_time: datetime


class RidePriceUpdateRequest(BaseModel):
    price: Decimal = Field(ge=0)


class RideStatusOverrideRequest(BaseModel):
    status: RideStatus


class RideResponse(BaseModel):
    ride_id: str
    driver_id: str
    from_location: str
    to_location: str
    price: Decimal
    total_seats: int
    available_seats: int
    seats_booked: int
    departure_time: datetime
    status: RideStatus
    is_ride_completed: bool | None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def from_domain(cls, ride: Ride) -> "RideResponse":
        return cls(
            ride_id=ride.ride_id,
            driver_id=ride.driver_id,
            from_location=ride.from_location,
            to_location=ride.to_location,
            price=ride.price,
            total_seats=ride.total_seats,
            available_seats=ride.available_seats,
            seats_booked=ride.seats_consumed,
            departure_time=ride.departure_time,
            status=ride.status,
            is_ride_completed=ride.is_ride_completed,
            completed_at=ride.completed_at,
            cancelled_at=ride.cancelled_at,
        )


class RideListingResponse(BaseModel):
    ride: RideResponse
    driver_rating: RatingSummary
    car_make: str | None = None
    car_model: str | None = None


class DriverRideResponse(BaseModel):
    ride: RideResponse
    earnings: Decimal


class RidePassengerResponse(BaseModel):
    booking: Booking
    phone: str


class RideBookingsResponse(BaseModel):
    ride: RideResponse
    seats_booked: int
    passengers: list[RidePassengerResponse]


class RideCancellationResponse(BaseModel):
    ride: RideResponse
    bookings_cancelled: int


class RideEarningsResponse(BaseModel):
    ride_id: str
    earnings: Decimal
