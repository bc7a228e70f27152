from fastapi import APIRouter, Request

from seatbook.api.dependencies import LifecycleDep, PrincipalDep, ReviewsDep
from seatbook.api.models.bookings import (
    BookingCreateRequest,
    BookingUpdateRequest,
    BookingViewResponse,
    ReviewCreateRequest,
)
from seatbook.api.models.rides import RideResponse
from seatbook.api.rate_limit import booking_write_limit, limiter
from seatbook.booking import Booking
from seatbook.bookings import BookingView
from seatbook.review import Review

router = APIRouter()


def _to_response(view: BookingView) -> BookingViewResponse:
    return BookingViewResponse(
        booking=view.booking,
        ride=RideResponse.from_domain(view.ride),
        can_modify=view.can_modify,
        reviewed=view.reviewed,
    )


@router.post("", response_model=Booking, status_code=201)
@limiter.limit(booking_write_limit)
def create_booking(
    request: Request,
    body: BookingCreateRequest,
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
) -> Booking:
    """Reserve seats on a ride.

    Returns 409 when fewer seats remain than requested; nothing is booked.
    """
    return lifecycle.create_booking(principal, body.ride_id, body.seats)


@router.get("/mine", response_model=list[BookingViewResponse])
def list_my_bookings(principal: PrincipalDep, lifecycle: LifecycleDep) -> list[BookingViewResponse]:
    return [_to_response(view) for view in lifecycle.list_passenger_bookings(principal)]


@router.get("/{booking_id}", response_model=BookingViewResponse)
def get_booking(
    booking_id: str, principal: PrincipalDep, lifecycle: LifecycleDep
) -> BookingViewResponse:
    return _to_response(lifecycle.get_booking(principal, booking_id))


@router.patch("/{booking_id}", response_model=Booking)
@limiter.limit(booking_write_limit)
def edit_booking(
    request: Request,
    booking_id: str,
    body: BookingUpdateRequest,
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
) -> Booking:
    """Change the number of seats; the total is recomputed at the ride's current price."""
    return lifecycle.edit_booking(principal, booking_id, body.seats)


@router.post("/{booking_id}/cancel", response_model=Booking)
@limiter.limit(booking_write_limit)
def cancel_booking(
    request: Request, booking_id: str, principal: PrincipalDep, lifecycle: LifecycleDep
) -> Booking:
    return lifecycle.cancel_booking(principal, booking_id)


@router.post("/{booking_id}/reviews", response_model=Review, status_code=201)
@limiter.limit(booking_write_limit)
def submit_review(
    request: Request,
    booking_id: str,
    body: ReviewCreateRequest,
    principal: PrincipalDep,
    reviews: ReviewsDep,
) -> Review:
    """Review the other party of a booking once its ride is completed."""
    return reviews.submit_review(principal, booking_id, body.rating, body.comment)
