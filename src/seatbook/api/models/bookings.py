"""Request and response models for bookings and reviews."""

from pydantic import BaseModel, Field

from seatbook.booking import Booking

from .rides import RideResponse


class BookingCreateRequest(BaseModel):
    ride_id: str
    seats: int


class BookingUpdateRequest(BaseModel):
    seats: int


class BookingViewResponse(BaseModel):
    """A passenger's booking with ride details and what they may still do."""

    booking: Booking
    ride: RideResponse
    can_modify: bool
    reviewed: bool


class ReviewCreateRequest(BaseModel):
    rating: int
    comment: str | None = Field(default=None, max_length=2000)
