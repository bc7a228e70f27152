"""Ride catalog: publishing, pricing and searching rides."""

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from seatbook.accounts.access import require_active, require_owner_or_admin, require_role
from seatbook.app_logging import log_booking_context
from seatbook.booking import Booking
from seatbook.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    RideNotActiveError,
    ValidationError,
)
from seatbook.db.repositories import (
    BookingRepository,
    DriverRepository,
    ReviewRepository,
    RideRepository,
)
from seatbook.db.transaction import transaction
from seatbook.db.utils import ensure_utc, utc_now
from seatbook.principal import Principal, Role
from seatbook.review import RatingSummary, ReviewDirection
from seatbook.ride import Ride, RideFilters, RideStatus, money

logger = logging.getLogger(__name__)


class RideListing(BaseModel):
    """A bookable ride as shown to passengers."""

    ride: Ride
    driver_rating: RatingSummary
    car_make: str | None = None
    car_model: str | None = None


class DriverRideView(BaseModel):
    ride: Ride
    seats_booked: int
    earnings: Decimal


class BookedPassenger(BaseModel):
    booking: Booking
    phone: str


class RideBookingSummary(BaseModel):
    """Who is on a ride, for its driver."""

    ride: Ride
    passengers: list[BookedPassenger]
    seats_booked: int


class RideCatalog:
    """Service for drivers publishing rides and passengers finding them."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def create_ride(
        self,
        principal: Principal,
        from_location: str,
        to_location: str,
        price: Decimal,
        total_seats: int,
        departure_time: datetime,
    ) -> Ride:
        """Publish a ride for a verified driver.

        Raises:
            AuthorizationError: caller is not a verified, unbanned driver
            ValidationError: bad locations, price, seat count or a past departure
        """
        require_role(principal, Role.DRIVER)
        departure_time = ensure_utc(departure_time)
        if departure_time <= self._clock():
            raise ValidationError(
                "Departure time must be in the future",
                details={"departure_time": departure_time.isoformat()},
            )
        try:
            # Validate through the domain model before touching the database
            draft = Ride(
                ride_id="draft",
                driver_id=principal.user_id,
                from_location=from_location,
                to_location=to_location,
                price=price,
                total_seats=total_seats,
                available_seats=total_seats,
                departure_time=departure_time,
            )
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "ride"
            raise ValidationError(f"{field}: {error['msg']}", details={"field": field}) from e

        with self._session_factory() as session, transaction(session):
            profile = DriverRepository(session).get(principal.user_id)
            if profile is None or not profile.is_verified:
                raise AuthorizationError(
                    "Driver profile must be verified before publishing rides",
                    details={"user_id": principal.user_id},
                )
            ride = RideRepository(session).create(
                driver_id=principal.user_id,
                from_location=draft.from_location,
                to_location=draft.to_location,
                price=draft.price,
                total_seats=draft.total_seats,
                departure_time=draft.departure_time,
            )

        with log_booking_context(ride_id=ride.ride_id, user_id=principal.user_id):
            logger.info(
                "Ride published: %s -> %s, %d seat(s) at %s",
                ride.from_location,
                ride.to_location,
                ride.total_seats,
                ride.price,
            )
        return ride

    def update_price(self, principal: Principal, ride_id: str, price: Decimal) -> Ride:
        """Change the per-seat price of an active ride.

        Existing bookings keep their total; edits after this recompute at the new price.
        """
        require_role(principal, Role.DRIVER, Role.ADMIN)
        if price is None or Decimal(price) < 0:
            raise ValidationError("Price must be zero or positive", details={"price": str(price)})

        with self._session_factory() as session, transaction(session):
            rides = RideRepository(session)
            ride = self._load(rides, ride_id)
            require_owner_or_admin(principal, ride.driver_id)
            if ride.status != RideStatus.ACTIVE:
                raise RideNotActiveError(
                    "Only active rides can be repriced",
                    details={"ride_id": ride_id, "status": ride.status.value},
                )
            rides.update_price(ride_id, money(price))
            updated = self._load(rides, ride_id)

        logger.info("Ride %s repriced to %s", ride_id, updated.price)
        return updated

    def get_ride(self, principal: Principal, ride_id: str) -> Ride:
        require_active(principal)
        with self._session_factory() as session:
            return self._load(RideRepository(session), ride_id)

    def list_active_rides(
        self, principal: Principal, filters: RideFilters | None = None
    ) -> list[RideListing]:
        """Bookable rides matching ``filters``, soonest departure first.

        Rides of banned drivers never appear.
        """
        require_active(principal)
        filters = filters or RideFilters()
        with self._session_factory() as session:
            rides = RideRepository(session).list_active(filters, self._clock())
            driver_ids = list(dict.fromkeys(r.driver_id for r in rides))
            ratings = ReviewRepository(session).rating_summaries(
                driver_ids, ReviewDirection.PASSENGER_TO_DRIVER
            )
            drivers = DriverRepository(session)
            profiles = {driver_id: drivers.get(driver_id) for driver_id in driver_ids}

        listings = []
        for ride in rides:
            profile = profiles.get(ride.driver_id)
            listings.append(
                RideListing(
                    ride=ride,
                    driver_rating=ratings[ride.driver_id],
                    car_make=profile.car_make if profile else None,
                    car_model=profile.car_model if profile else None,
                )
            )
        return listings

    def list_driver_rides(self, principal: Principal) -> list[DriverRideView]:
        """The calling driver's rides with seats booked and earnings per ride."""
        require_role(principal, Role.DRIVER)
        with self._session_factory() as session:
            rides = RideRepository(session).list_by_driver(principal.user_id)
            earnings = BookingRepository(session).completed_revenue_by_ride(principal.user_id)
        return [
            DriverRideView(
                ride=ride,
                seats_booked=ride.seats_consumed,
                earnings=earnings.get(ride.ride_id, money(0)),
            )
            for ride in rides
        ]

    def ride_booking_summary(self, principal: Principal, ride_id: str) -> RideBookingSummary:
        with self._session_factory() as session:
            ride = self._load(RideRepository(session), ride_id)
            require_owner_or_admin(principal, ride.driver_id)
            rows = BookingRepository(session).list_confirmed_for_ride(ride_id)

        passengers = [BookedPassenger(booking=booking, phone=phone) for booking, phone in rows]
        return RideBookingSummary(
            ride=ride,
            passengers=passengers,
            seats_booked=sum(p.booking.seats_booked for p in passengers),
        )

    def _load(self, rides: RideRepository, ride_id: str) -> Ride:
        ride = rides.get(ride_id)
        if ride is None:
            raise NotFoundError(f"Ride {ride_id} not found", details={"ride_id": ride_id})
        return ride
