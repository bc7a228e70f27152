from datetime import datetime
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Query, Request
from pydantic import ValidationError as PydanticValidationError

from seatbook.api.dependencies import CatalogDep, LifecycleDep, PrincipalDep, StatsDep
from seatbook.api.models.rides import (
    DriverRideResponse,
    RideBookingsResponse,
    RideCancellationResponse,
    RideCreateRequest,
    RideEarningsResponse,
    RideListingResponse,
    RidePassengerResponse,
    RidePriceUpdateRequest,
    RideResponse,
)
from seatbook.api.rate_limit import booking_write_limit, limiter
from seatbook.core.exceptions import ValidationError
from seatbook.ride import RideFilters, TimeOfDay

router = APIRouter()


@router.post("", response_model=RideResponse, status_code=201)
@limiter.limit(booking_write_limit)
def create_ride(
    request: Request,
    body: RideCreateRequest,
    principal: PrincipalDep,
    catalog: CatalogDep,
) -> RideResponse:
    """Publish a ride. Requires a verified driver profile."""
    ride = catalog.create_ride(
        principal,
        from_location=body.from_location,
        to_location=body.to_location,
        price=body.price,
        total_seats=body.total_seats,
        departure_time=body.departure_time,
    )
    return RideResponse.from_domain(ride)


@router.get("", response_model=list[RideListingResponse])
def list_rides(
    principal: PrincipalDep,
    catalog: CatalogDep,
    from_contains: Annotated[str | None, Query(max_length=100)] = None,
    to_contains: Annotated[str | None, Query(max_length=100)] = None,
    price_min: Annotated[Decimal | None, Query()] = None,
    price_max: Annotated[Decimal | None, Query()] = None,
    min_rating: Annotated[float | None, Query()] = None,
    departs_after: Annotated[datetime | None, Query()] = None,
    departs_before: Annotated[datetime | None, Query()] = None,
    time_of_day: Annotated[TimeOfDay | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[RideListingResponse]:
    """Bookable rides, soonest departure first. Rides of banned drivers never appear."""
    try:
        filters = RideFilters(
            from_contains=from_contains,
            to_contains=to_contains,
            price_min=price_min,
            price_max=price_max,
            min_rating=min_rating,
            departs_after=departs_after,
            departs_before=departs_before,
            time_of_day=time_of_day,
            limit=limit,
            offset=offset,
        )
    except PydanticValidationError as e:
        raise ValidationError(str(e.errors()[0]["msg"])) from e

    return [
        RideListingResponse(
            ride=RideResponse.from_domain(listing.ride),
            driver_rating=listing.driver_rating,
            car_make=listing.car_make,
            car_model=listing.car_model,
        )
        for listing in catalog.list_active_rides(principal, filters)
    ]


@router.get("/mine", response_model=list[DriverRideResponse])
def list_my_rides(principal: PrincipalDep, catalog: CatalogDep) -> list[DriverRideResponse]:
    return [
        DriverRideResponse(ride=RideResponse.from_domain(view.ride), earnings=view.earnings)
        for view in catalog.list_driver_rides(principal)
    ]


@router.get("/{ride_id}", response_model=RideResponse)
def get_ride(ride_id: str, principal: PrincipalDep, catalog: CatalogDep) -> RideResponse:
    return RideResponse.from_domain(catalog.get_ride(principal, ride_id))


@router.patch("/{ride_id}", response_model=RideResponse)
@limiter.limit(booking_write_limit)
def update_price(
    request: Request,
    ride_id: str,
    body: RidePriceUpdateRequest,
    principal: PrincipalDep,
    catalog: CatalogDep,
) -> RideResponse:
    """Reprice an active ride; existing bookings keep their totals."""
    return RideResponse.from_domain(catalog.update_price(principal, ride_id, body.price))


@router.post("/{ride_id}/complete", response_model=RideResponse)
@limiter.limit(booking_write_limit)
def complete_ride(
    request: Request, ride_id: str, principal: PrincipalDep, lifecycle: LifecycleDep
) -> RideResponse:
    return RideResponse.from_domain(lifecycle.complete_ride(principal, ride_id))


@router.post("/{ride_id}/cancel", response_model=RideCancellationResponse)
@limiter.limit(booking_write_limit)
def cancel_ride(
    request: Request, ride_id: str, principal: PrincipalDep, lifecycle: LifecycleDep
) -> RideCancellationResponse:
    """Cancel a ride and all of its confirmed bookings."""
    result = lifecycle.cancel_ride(principal, ride_id)
    return RideCancellationResponse(
        ride=RideResponse.from_domain(result.ride),
        bookings_cancelled=result.bookings_cancelled,
    )


@router.get("/{ride_id}/bookings", response_model=RideBookingsResponse)
def ride_bookings(
    ride_id: str, principal: PrincipalDep, catalog: CatalogDep
) -> RideBookingsResponse:
    summary = catalog.ride_booking_summary(principal, ride_id)
    return RideBookingsResponse(
        ride=RideResponse.from_domain(summary.ride),
        seats_booked=summary.seats_booked,
        passengers=[
            RidePassengerResponse(booking=p.booking, phone=p.phone) for p in summary.passengers
        ],
    )


@router.get("/{ride_id}/earnings", response_model=RideEarningsResponse)
def ride_earnings(ride_id: str, principal: PrincipalDep, stats: StatsDep) -> RideEarningsResponse:
    return RideEarningsResponse(ride_id=ride_id, earnings=stats.ride_earnings(principal, ride_id))
