"""Booking lifecycle: create, edit and cancel bookings; complete and cancel rides.

Each operation is one transaction against a single ride. Seat changes go
through the SeatLedger inside that transaction, so a rejected operation
leaves neither a booking row nor a seat change behind. Conflicts detected
by compare-and-swap updates are retried from a fresh read.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seatbook import metrics
from seatbook.accounts.access import require_active, require_owner_or_admin, require_role
from seatbook.app_logging import log_booking_context
from seatbook.booking import Booking, BookingStatus, can_modify, compute_total_price
from seatbook.core.exceptions import (
    AuthorizationError,
    ConcurrencyConflictError,
    DuplicateBookingError,
    InsufficientSeatsError,
    InvalidSeatCountError,
    NotFoundError,
    NotModifiableError,
    RideNotActiveError,
    SeatbookError,
    StateError,
)
from seatbook.core.retry import RetryConfig
from seatbook.db.repositories import (
    BookingRepository,
    DriverRepository,
    ReviewRepository,
    RideRepository,
    UserRepository,
)
from seatbook.db.transaction import run_in_transaction
from seatbook.db.utils import utc_now
from seatbook.ledger import SeatLedger
from seatbook.principal import Principal, Role
from seatbook.review import ReviewDirection
from seatbook.ride import Ride, RideStatus
from seatbook.settings import BookingSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BookingView(BaseModel):
    """A passenger's booking together with its ride."""

    booking: Booking
    ride: Ride
    can_modify: bool
    reviewed: bool


class RideCancellation(BaseModel):
    ride: Ride
    bookings_cancelled: int


class BookingLifecycleManager:
    """Coordinates bookings with the seat ledger under transactional guarantees."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: BookingSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._settings = settings or BookingSettings()
        self._clock = clock
        self._retry_config = RetryConfig(
            max_attempts=self._settings.conflict_max_attempts,
            base_delay=self._settings.conflict_base_delay,
            multiplier=self._settings.conflict_multiplier,
            max_delay=self._settings.conflict_max_delay,
            retryable_exceptions=(ConcurrencyConflictError,),
        )

    # --- Bookings ---

    def create_booking(self, principal: Principal, ride_id: str, seats: int) -> Booking:
        """Reserve ``seats`` on an active, future ride for a passenger.

        Raises:
            InvalidSeatCountError: seats outside 1..max_seats_per_booking
            NotFoundError: ride does not exist
            RideNotActiveError: ride is not active, has departed, or its driver is banned
            DuplicateBookingError: passenger already holds a confirmed booking on the ride
            InsufficientSeatsError: not enough seats left (no booking is created)
        """
        require_role(principal, Role.PASSENGER)
        self._check_seat_count(seats)

        def work(session: Session) -> Booking:
            rides = RideRepository(session)
            bookings = BookingRepository(session)

            ride = rides.get(ride_id)
            if ride is None:
                raise NotFoundError(f"Ride {ride_id} not found", details={"ride_id": ride_id})
            self._check_bookable(session, ride)

            if bookings.find_confirmed(principal.user_id, ride_id) is not None:
                raise DuplicateBookingError(
                    "You already have a booking on this ride; edit it instead",
                    details={"ride_id": ride_id},
                )

            SeatLedger(session).reserve(ride_id, seats)
            try:
                return bookings.create(
                    passenger_id=principal.user_id,
                    ride_id=ride_id,
                    seats_booked=seats,
                    total_price=compute_total_price(seats, ride.price),
                )
            except IntegrityError as e:
                raise DuplicateBookingError(
                    "You already have a booking on this ride; edit it instead",
                    details={"ride_id": ride_id},
                ) from e

        with log_booking_context(ride_id=ride_id, user_id=principal.user_id):
            booking = self._execute("create_booking", work)
            metrics.bookings_created.add(1)
            logger.info(
                "Booking %s confirmed: %d seat(s), total %s",
                booking.booking_id,
                booking.seats_booked,
                booking.total_price,
            )
            return booking

    def edit_booking(self, principal: Principal, booking_id: str, new_seats: int) -> Booking:
        """Change the seat count of a confirmed booking before departure.

        Additional seats are reserved before the new count is written; on
        InsufficientSeatsError both the booking and the ledger are unchanged.
        """
        require_active(principal)
        self._check_seat_count(new_seats)

        def work(session: Session) -> Booking:
            bookings = BookingRepository(session)
            booking = self._load_booking(bookings, booking_id, for_update=True)
            if booking.passenger_id != principal.user_id:
                raise AuthorizationError(
                    "Only the passenger who made a booking can change it",
                    details={"booking_id": booking_id},
                )

            ride = self._load_ride(RideRepository(session), booking.ride_id)
            if not can_modify(
                booking, ride, self._clock(), self._settings.modification_cutoff_minutes
            ):
                raise NotModifiableError(
                    "Booking can no longer be changed",
                    details={"booking_id": booking_id, "status": booking.status.value},
                )

            delta = new_seats - booking.seats_booked
            if delta == 0:
                return booking

            SeatLedger(session).adjust(ride.ride_id, delta)
            new_total = compute_total_price(new_seats, ride.price)
            if not bookings.update_seats(booking_id, booking.seats_booked, new_seats, new_total):
                raise ConcurrencyConflictError(
                    f"Booking {booking_id} changed concurrently",
                    details={"booking_id": booking_id},
                )
            return self._load_booking(bookings, booking_id)

        with log_booking_context(booking_id=booking_id, user_id=principal.user_id):
            booking = self._execute("edit_booking", work)
            logger.info("Booking %s now holds %d seat(s)", booking_id, booking.seats_booked)
            return booking

    def cancel_booking(self, principal: Principal, booking_id: str) -> Booking:
        """Cancel a booking and return its seats; cancelling twice is a no-op."""
        require_active(principal)

        def work(session: Session) -> Booking:
            bookings = BookingRepository(session)
            booking = self._load_booking(bookings, booking_id, for_update=True)
            require_owner_or_admin(principal, booking.passenger_id)

            if booking.status == BookingStatus.CANCELLED:
                return booking

            ride = self._load_ride(RideRepository(session), booking.ride_id)
            if not can_modify(
                booking, ride, self._clock(), self._settings.modification_cutoff_minutes
            ):
                raise NotModifiableError(
                    "Booking can no longer be cancelled",
                    details={"booking_id": booking_id, "ride_status": ride.status.value},
                )

            if not bookings.mark_cancelled(booking_id):
                raise ConcurrencyConflictError(
                    f"Booking {booking_id} changed concurrently",
                    details={"booking_id": booking_id},
                )
            SeatLedger(session).release(ride.ride_id, booking.seats_booked)
            return self._load_booking(bookings, booking_id)

        with log_booking_context(booking_id=booking_id, user_id=principal.user_id):
            booking = self._execute("cancel_booking", work)
            logger.info("Booking %s cancelled", booking_id)
            return booking

    def get_booking(self, principal: Principal, booking_id: str) -> BookingView:
        require_active(principal)
        with self._session_factory() as session:
            bookings = BookingRepository(session)
            booking = self._load_booking(bookings, booking_id)
            ride = self._load_ride(RideRepository(session), booking.ride_id)
            if principal.user_id not in (booking.passenger_id, ride.driver_id):
                require_owner_or_admin(principal, booking.passenger_id)
            reviewed = ReviewRepository(session).exists(
                booking_id, ReviewDirection.PASSENGER_TO_DRIVER
            )
            return self._view(booking, ride, reviewed)

    def list_passenger_bookings(self, principal: Principal) -> list[BookingView]:
        """All bookings of the calling passenger, newest first, with their rides."""
        require_active(principal)
        with self._session_factory() as session:
            bookings = BookingRepository(session).list_by_passenger(principal.user_id)
            rides = RideRepository(session)
            reviewed = ReviewRepository(session).reviewed_booking_ids(
                [b.booking_id for b in bookings], ReviewDirection.PASSENGER_TO_DRIVER
            )
            views = []
            for booking in bookings:
                ride = self._load_ride(rides, booking.ride_id)
                views.append(self._view(booking, ride, booking.booking_id in reviewed))
            return views

    # --- Rides ---

    def cancel_ride(self, principal: Principal, ride_id: str) -> RideCancellation:
        """Cancel a ride and every confirmed booking on it; re-invoking is a no-op."""
        require_role(principal, Role.DRIVER, Role.ADMIN)
        cancelled_now = False

        def work(session: Session) -> RideCancellation:
            nonlocal cancelled_now
            rides = RideRepository(session)
            ride = self._load_ride(rides, ride_id, for_update=True)
            require_owner_or_admin(principal, ride.driver_id)

            if ride.status == RideStatus.CANCELLED:
                return RideCancellation(ride=ride, bookings_cancelled=0)
            if not ride.can_transition_to(RideStatus.CANCELLED):
                raise RideNotActiveError(
                    "Completed rides cannot be cancelled",
                    details={"ride_id": ride_id, "status": ride.status.value},
                )

            if not rides.set_status(ride_id, RideStatus.CANCELLED, expected=RideStatus.ACTIVE):
                raise ConcurrencyConflictError(f"Ride {ride_id} changed concurrently")
            cancelled = self._retire_bookings(session, ride_id)
            cancelled_now = True
            return RideCancellation(
                ride=self._load_ride(rides, ride_id), bookings_cancelled=cancelled
            )

        with log_booking_context(ride_id=ride_id, user_id=principal.user_id):
            result = self._execute("cancel_ride", work)
            if not cancelled_now:
                return result
            metrics.rides_cancelled.add(1)
            logger.info(
                "Ride %s cancelled; %d booking(s) cancelled",
                ride_id,
                result.bookings_cancelled,
            )
            return result

    def complete_ride(self, principal: Principal, ride_id: str) -> Ride:
        """Mark a ride completed so its confirmed bookings count toward earnings."""
        require_role(principal, Role.DRIVER, Role.ADMIN)
        completed_now = False

        def work(session: Session) -> Ride:
            nonlocal completed_now
            rides = RideRepository(session)
            ride = self._load_ride(rides, ride_id, for_update=True)
            require_owner_or_admin(principal, ride.driver_id)

            if ride.status == RideStatus.COMPLETED:
                return ride
            if not ride.can_transition_to(RideStatus.COMPLETED):
                raise RideNotActiveError(
                    "Cancelled rides cannot be completed",
                    details={"ride_id": ride_id, "status": ride.status.value},
                )

            if not rides.set_status(ride_id, RideStatus.COMPLETED, expected=RideStatus.ACTIVE):
                raise ConcurrencyConflictError(f"Ride {ride_id} changed concurrently")
            DriverRepository(session).increment_completed_rides(ride.driver_id)
            completed_now = True
            return self._load_ride(rides, ride_id)

        with log_booking_context(ride_id=ride_id, user_id=principal.user_id):
            ride = self._execute("complete_ride", work)
            if completed_now:
                metrics.rides_completed.add(1)
                logger.info("Ride %s completed", ride_id)
            return ride

    def override_ride_status(
        self, principal: Principal, ride_id: str, target: RideStatus
    ) -> RideCancellation:
        """Administrative move out of a terminal status.

        Completed or cancelled rides may be reopened (departure must still be
        ahead); completed rides may be cancelled, which cancels their bookings.
        """
        require_role(principal, Role.ADMIN)

        def work(session: Session) -> RideCancellation:
            rides = RideRepository(session)
            drivers = DriverRepository(session)
            ride = self._load_ride(rides, ride_id, for_update=True)

            if not ride.can_transition_to(target, override=True):
                raise StateError(
                    f"Cannot override ride status from {ride.status.value} to {target.value}",
                    details={"ride_id": ride_id},
                )
            if target == RideStatus.ACTIVE and ride.has_departed(self._clock()):
                raise RideNotActiveError(
                    "Cannot reopen a ride whose departure time has passed",
                    details={"ride_id": ride_id},
                )

            if not rides.set_status(ride_id, target, expected=ride.status):
                raise ConcurrencyConflictError(f"Ride {ride_id} changed concurrently")
            if ride.status == RideStatus.COMPLETED:
                drivers.decrement_completed_rides(ride.driver_id)

            cancelled = 0
            if target == RideStatus.CANCELLED:
                cancelled = self._retire_bookings(session, ride_id)
            return RideCancellation(
                ride=self._load_ride(rides, ride_id), bookings_cancelled=cancelled
            )

        with log_booking_context(ride_id=ride_id, user_id=principal.user_id):
            result = self._execute("override_ride_status", work)
            logger.warning(
                "Ride %s status overridden to %s by admin %s",
                ride_id,
                target.value,
                principal.user_id,
            )
            return result

    # --- Helpers ---

    def _execute(self, operation_name: str, work: Callable[[Session], T]) -> T:
        try:
            return run_in_transaction(
                self._session_factory,
                work,
                retry_config=self._retry_config,
                operation_name=operation_name,
                on_retry=self._on_conflict,
            )
        except SeatbookError as e:
            metrics.booking_rejections.add(1, {"operation": operation_name, "reason": _reason(e)})
            logger.warning("%s rejected: %s", operation_name, e.message)
            raise

    def _on_conflict(self, error: Exception, attempt: int) -> None:
        metrics.seat_ledger_conflicts.add(1)

    def _check_seat_count(self, seats: int) -> None:
        limit = self._settings.max_seats_per_booking
        if isinstance(seats, bool) or not isinstance(seats, int) or not 1 <= seats <= limit:
            raise InvalidSeatCountError(
                f"Seat count must be between 1 and {limit}",
                details={"seats": seats, "max": limit},
            )

    def _check_bookable(self, session: Session, ride: Ride) -> None:
        if ride.status != RideStatus.ACTIVE or ride.has_departed(self._clock()):
            raise RideNotActiveError(
                "Ride is no longer open for booking",
                details={"ride_id": ride.ride_id, "status": ride.status.value},
            )
        driver = UserRepository(session).get(ride.driver_id)
        if driver is None or driver.is_banned:
            raise RideNotActiveError(
                "Ride is no longer open for booking", details={"ride_id": ride.ride_id}
            )

    def _retire_bookings(self, session: Session, ride_id: str) -> int:
        cancelled = BookingRepository(session).cancel_all_for_ride(ride_id)
        SeatLedger(session).reset(ride_id)
        return cancelled

    def _load_booking(
        self, bookings: BookingRepository, booking_id: str, for_update: bool = False
    ) -> Booking:
        booking = bookings.get(booking_id, for_update=for_update)
        if booking is None:
            raise NotFoundError(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    def _load_ride(self, rides: RideRepository, ride_id: str, for_update: bool = False) -> Ride:
        ride = rides.get(ride_id, for_update=for_update)
        if ride is None:
            raise NotFoundError(f"Ride {ride_id} not found", details={"ride_id": ride_id})
        return ride

    def _view(self, booking: Booking, ride: Ride, reviewed: bool) -> BookingView:
        return BookingView(
            booking=booking,
            ride=ride,
            can_modify=can_modify(
                booking, ride, self._clock(), self._settings.modification_cutoff_minutes
            ),
            reviewed=reviewed,
        )


def _reason(error: SeatbookError) -> str:
    if isinstance(error, InsufficientSeatsError):
        return "insufficient_seats"
    return type(error).__name__
