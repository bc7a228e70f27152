"""Tests for BookingLifecycleManager: booking, edits, cancellation and ride outcomes."""

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest

from seatbook.booking import BookingStatus
from seatbook.bookings import BookingLifecycleManager
from seatbook.core.exceptions import (
    AuthorizationError,
    DuplicateBookingError,
    InsufficientSeatsError,
    InvalidSeatCountError,
    NotFoundError,
    NotModifiableError,
    RideNotActiveError,
    StateError,
)
from seatbook.db.repositories import BookingRepository, DriverRepository, ReviewRepository
from seatbook.db.transaction import transaction
from seatbook.review import ReviewDirection
from seatbook.ride import RideStatus


@pytest.fixture
def driver(market):
    return market.driver()


@pytest.fixture
def passenger(market):
    return market.passenger()


@pytest.fixture
def ride(market, driver):
    return market.ride(driver, total_seats=4, price="500.00")


@pytest.mark.unit
class TestCreateBooking:
    def test_reserves_seats_and_prices_booking(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 3)

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.seats_booked == 3
        assert booking.total_price == Decimal("1500.00")
        assert market.get_ride(ride.ride_id).available_seats == 1

    def test_insufficient_seats_leaves_no_booking(
        self, lifecycle, market, session_factory, passenger, ride
    ):
        lifecycle.create_booking(passenger, ride.ride_id, 3)
        other = market.passenger()

        with pytest.raises(InsufficientSeatsError) as exc_info:
            lifecycle.create_booking(other, ride.ride_id, 2)

        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        assert market.get_ride(ride.ride_id).available_seats == 1
        with session_factory() as session:
            assert BookingRepository(session).list_by_passenger(other.user_id) == []

    @pytest.mark.parametrize("seats", [0, -1, 9])
    def test_rejects_invalid_seat_count(self, lifecycle, market, passenger, ride, seats):
        with pytest.raises(InvalidSeatCountError):
            lifecycle.create_booking(passenger, ride.ride_id, seats)
        assert market.get_ride(ride.ride_id).available_seats == 4

    def test_unknown_ride(self, lifecycle, passenger):
        with pytest.raises(NotFoundError):
            lifecycle.create_booking(passenger, "no-such-ride", 1)

    def test_departed_ride_is_not_bookable(self, lifecycle, market, driver, passenger):
        departed = market.ride(driver, departs_in=timedelta(minutes=-1))

        with pytest.raises(RideNotActiveError):
            lifecycle.create_booking(passenger, departed.ride_id, 1)

    def test_cancelled_ride_is_not_bookable(self, lifecycle, driver, passenger, ride):
        lifecycle.cancel_ride(driver, ride.ride_id)

        with pytest.raises(RideNotActiveError):
            lifecycle.create_booking(passenger, ride.ride_id, 1)

    def test_banned_driver_rides_are_not_bookable(self, lifecycle, market, driver, passenger, ride):
        market.ban(driver)

        with pytest.raises(RideNotActiveError):
            lifecycle.create_booking(passenger, ride.ride_id, 1)

    def test_banned_passenger_is_rejected(self, lifecycle, market, passenger, ride):
        banned = market.ban(passenger)

        with pytest.raises(AuthorizationError):
            lifecycle.create_booking(banned, ride.ride_id, 1)
        assert market.get_ride(ride.ride_id).available_seats == 4

    def test_only_passengers_book(self, lifecycle, driver, ride):
        with pytest.raises(AuthorizationError):
            lifecycle.create_booking(driver, ride.ride_id, 1)

    def test_second_booking_on_same_ride_is_duplicate(self, lifecycle, market, passenger, ride):
        lifecycle.create_booking(passenger, ride.ride_id, 1)

        with pytest.raises(DuplicateBookingError):
            lifecycle.create_booking(passenger, ride.ride_id, 1)
        assert market.get_ride(ride.ride_id).available_seats == 3

    def test_can_rebook_after_cancelling(self, lifecycle, market, passenger, ride):
        first = lifecycle.create_booking(passenger, ride.ride_id, 2)
        lifecycle.cancel_booking(passenger, first.booking_id)

        second = lifecycle.create_booking(passenger, ride.ride_id, 1)

        assert second.booking_id != first.booking_id
        assert market.get_ride(ride.ride_id).available_seats == 3


@pytest.mark.unit
class TestEditBooking:
    def test_increase_reserves_delta_and_reprices(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        edited = lifecycle.edit_booking(passenger, booking.booking_id, 3)

        assert edited.seats_booked == 3
        assert edited.total_price == Decimal("1500.00")
        assert market.get_ride(ride.ride_id).available_seats == 1

    def test_decrease_releases_delta(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 4)

        edited = lifecycle.edit_booking(passenger, booking.booking_id, 1)

        assert edited.total_price == Decimal("500.00")
        assert market.get_ride(ride.ride_id).available_seats == 3

    def test_same_seat_count_is_noop(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        edited = lifecycle.edit_booking(passenger, booking.booking_id, 1)

        assert edited.seats_booked == 1
        assert edited.total_price == booking.total_price
        assert market.get_ride(ride.ride_id).available_seats == 3

    def test_increase_beyond_availability_fails_atomically(
        self, lifecycle, market, session_factory, passenger, ride
    ):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 2)
        lifecycle.create_booking(market.passenger(), ride.ride_id, 1)

        with pytest.raises(InsufficientSeatsError):
            lifecycle.edit_booking(passenger, booking.booking_id, 4)

        with session_factory() as session:
            unchanged = BookingRepository(session).get(booking.booking_id)
        assert unchanged.seats_booked == 2
        assert unchanged.total_price == Decimal("1000.00")
        assert market.get_ride(ride.ride_id).available_seats == 1

    def test_only_owner_can_edit(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        with pytest.raises(AuthorizationError):
            lifecycle.edit_booking(market.passenger(), booking.booking_id, 2)
        with pytest.raises(AuthorizationError):
            lifecycle.edit_booking(market.admin(), booking.booking_id, 2)

    def test_cancelled_booking_is_not_modifiable(self, lifecycle, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)
        lifecycle.cancel_booking(passenger, booking.booking_id)

        with pytest.raises(NotModifiableError):
            lifecycle.edit_booking(passenger, booking.booking_id, 2)

    def test_departed_ride_is_not_modifiable(self, lifecycle, clock, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)
        clock.advance(timedelta(days=2))

        with pytest.raises(NotModifiableError):
            lifecycle.edit_booking(passenger, booking.booking_id, 2)

    def test_cutoff_window_blocks_late_edits(
        self, session_factory, booking_settings, clock, market, passenger, driver
    ):
        strict = BookingLifecycleManager(
            session_factory,
            booking_settings.model_copy(update={"modification_cutoff_minutes": 120}),
            clock=clock,
        )
        soon = market.ride(driver, departs_in=timedelta(hours=3))
        booking = strict.create_booking(passenger, soon.ride_id, 1)

        clock.advance(timedelta(hours=2))

        with pytest.raises(NotModifiableError):
            strict.edit_booking(passenger, booking.booking_id, 2)
        with pytest.raises(NotModifiableError):
            strict.cancel_booking(passenger, booking.booking_id)

    def test_unknown_booking(self, lifecycle, passenger):
        with pytest.raises(NotFoundError):
            lifecycle.edit_booking(passenger, "no-such-booking", 2)


@pytest.mark.unit
class TestCancelBooking:
    def test_round_trip_restores_availability(self, lifecycle, market, passenger, ride):
        before = market.get_ride(ride.ride_id).available_seats
        booking = lifecycle.create_booking(passenger, ride.ride_id, 2)

        cancelled = lifecycle.cancel_booking(passenger, booking.booking_id)

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert market.get_ride(ride.ride_id).available_seats == before

    def test_cancelling_twice_is_noop(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 2)
        lifecycle.cancel_booking(passenger, booking.booking_id)

        again = lifecycle.cancel_booking(passenger, booking.booking_id)

        assert again.status == BookingStatus.CANCELLED
        assert market.get_ride(ride.ride_id).available_seats == 4

    def test_admin_can_cancel_for_passenger(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        lifecycle.cancel_booking(market.admin(), booking.booking_id)

        assert market.get_ride(ride.ride_id).available_seats == 4

    def test_other_passenger_cannot_cancel(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        with pytest.raises(AuthorizationError):
            lifecycle.cancel_booking(market.passenger(), booking.booking_id)

    def test_completed_ride_booking_is_not_cancellable(self, lifecycle, driver, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)
        lifecycle.complete_ride(driver, ride.ride_id)

        with pytest.raises(NotModifiableError):
            lifecycle.cancel_booking(passenger, booking.booking_id)


@pytest.mark.unit
class TestBookingScenario:
    """Capacity 4 at 500 per seat, end to end."""

    def test_book_reject_cancel_edit(self, lifecycle, market, ride):
        alice = market.passenger()
        bob = market.passenger()

        first = lifecycle.create_booking(alice, ride.ride_id, 3)
        assert market.get_ride(ride.ride_id).available_seats == 1
        assert first.total_price == Decimal("1500.00")

        with pytest.raises(InsufficientSeatsError):
            lifecycle.create_booking(bob, ride.ride_id, 2)
        assert market.get_ride(ride.ride_id).available_seats == 1

        lifecycle.cancel_booking(alice, first.booking_id)
        assert market.get_ride(ride.ride_id).available_seats == 4

        second = lifecycle.create_booking(bob, ride.ride_id, 1)
        lifecycle.edit_booking(bob, second.booking_id, 1)
        assert market.get_ride(ride.ride_id).available_seats == 3


@pytest.mark.unit
class TestViews:
    def test_get_booking_reports_modifiability(self, lifecycle, driver, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        view = lifecycle.get_booking(passenger, booking.booking_id)
        assert view.can_modify is True
        assert view.reviewed is False
        assert view.ride.ride_id == ride.ride_id

        lifecycle.complete_ride(driver, ride.ride_id)
        assert lifecycle.get_booking(passenger, booking.booking_id).can_modify is False

    def test_driver_of_ride_can_view_booking(self, lifecycle, driver, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        view = lifecycle.get_booking(driver, booking.booking_id)

        assert view.booking.passenger_id == passenger.user_id

    def test_stranger_cannot_view_booking(self, lifecycle, market, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 1)

        with pytest.raises(AuthorizationError):
            lifecycle.get_booking(market.passenger(), booking.booking_id)

    def test_list_marks_reviewed_bookings(
        self, lifecycle, market, session_factory, driver, passenger, ride
    ):
        reviewed = lifecycle.create_booking(passenger, ride.ride_id, 1)
        other_ride = market.ride(driver)
        pending = lifecycle.create_booking(passenger, other_ride.ride_id, 2)
        lifecycle.complete_ride(driver, ride.ride_id)
        with session_factory() as session, transaction(session):
            ReviewRepository(session).create(
                booking_id=reviewed.booking_id,
                author_id=passenger.user_id,
                subject_id=driver.user_id,
                direction=ReviewDirection.PASSENGER_TO_DRIVER,
                rating=5,
                comment=None,
            )

        views = {v.booking.booking_id: v for v in lifecycle.list_passenger_bookings(passenger)}

        assert views[reviewed.booking_id].reviewed is True
        assert views[reviewed.booking_id].can_modify is False
        assert views[pending.booking_id].reviewed is False
        assert views[pending.booking_id].can_modify is True


@pytest.mark.unit
class TestCancelRide:
    def test_cascades_to_confirmed_bookings(
        self, lifecycle, market, session_factory, driver, ride
    ):
        passengers = [market.passenger() for _ in range(3)]
        for p in passengers:
            lifecycle.create_booking(p, ride.ride_id, 1)

        result = lifecycle.cancel_ride(driver, ride.ride_id)

        assert result.bookings_cancelled == 3
        assert result.ride.status == RideStatus.CANCELLED
        assert result.ride.is_ride_completed is False
        assert result.ride.available_seats == ride.total_seats
        with session_factory() as session:
            bookings = BookingRepository(session)
            for p in passengers:
                (booking,) = bookings.list_by_passenger(p.user_id)
                assert booking.status == BookingStatus.CANCELLED

    def test_second_cancel_is_noop(self, lifecycle, market, driver, ride):
        lifecycle.create_booking(market.passenger(), ride.ride_id, 2)
        lifecycle.cancel_ride(driver, ride.ride_id)

        again = lifecycle.cancel_ride(driver, ride.ride_id)

        assert again.bookings_cancelled == 0
        assert again.ride.status == RideStatus.CANCELLED

    def test_only_owning_driver_or_admin(self, lifecycle, market, ride):
        with pytest.raises(AuthorizationError):
            lifecycle.cancel_ride(market.driver(), ride.ride_id)
        with pytest.raises(AuthorizationError):
            lifecycle.cancel_ride(market.passenger(), ride.ride_id)

        result = lifecycle.cancel_ride(market.admin(), ride.ride_id)
        assert result.ride.status == RideStatus.CANCELLED

    def test_completed_ride_cannot_be_cancelled(self, lifecycle, driver, ride):
        lifecycle.complete_ride(driver, ride.ride_id)

        with pytest.raises(RideNotActiveError):
            lifecycle.cancel_ride(driver, ride.ride_id)


@pytest.mark.unit
class TestCompleteRide:
    def test_marks_completed_and_counts_once(self, lifecycle, session_factory, driver, ride):
        completed = lifecycle.complete_ride(driver, ride.ride_id)
        again = lifecycle.complete_ride(driver, ride.ride_id)

        assert completed.status == RideStatus.COMPLETED
        assert completed.is_ride_completed is True
        assert again.status == RideStatus.COMPLETED
        with session_factory() as session:
            assert DriverRepository(session).get(driver.user_id).completed_rides == 1

    def test_cancelled_ride_cannot_be_completed(self, lifecycle, driver, ride):
        lifecycle.cancel_ride(driver, ride.ride_id)

        with pytest.raises(RideNotActiveError):
            lifecycle.complete_ride(driver, ride.ride_id)

    def test_keeps_bookings_confirmed(self, lifecycle, session_factory, driver, passenger, ride):
        booking = lifecycle.create_booking(passenger, ride.ride_id, 2)

        lifecycle.complete_ride(driver, ride.ride_id)

        with session_factory() as session:
            assert BookingRepository(session).get(booking.booking_id).is_confirmed


@pytest.mark.unit
class TestOverrideRideStatus:
    def test_reopen_completed_ride(self, lifecycle, market, session_factory, driver, ride):
        lifecycle.complete_ride(driver, ride.ride_id)

        result = lifecycle.override_ride_status(market.admin(), ride.ride_id, RideStatus.ACTIVE)

        assert result.ride.status == RideStatus.ACTIVE
        assert result.ride.completed_at is None
        with session_factory() as session:
            assert DriverRepository(session).get(driver.user_id).completed_rides == 0

    def test_cancel_completed_ride_cascades(self, lifecycle, market, driver, passenger, ride):
        lifecycle.create_booking(passenger, ride.ride_id, 2)
        lifecycle.complete_ride(driver, ride.ride_id)

        result = lifecycle.override_ride_status(
            market.admin(), ride.ride_id, RideStatus.CANCELLED
        )

        assert result.bookings_cancelled == 1
        assert result.ride.available_seats == 4

    def test_reopen_requires_future_departure(self, lifecycle, market, clock, driver, ride):
        lifecycle.cancel_ride(driver, ride.ride_id)
        clock.advance(timedelta(days=2))

        with pytest.raises(RideNotActiveError):
            lifecycle.override_ride_status(market.admin(), ride.ride_id, RideStatus.ACTIVE)

    def test_active_ride_has_no_override(self, lifecycle, market, ride):
        with pytest.raises(StateError):
            lifecycle.override_ride_status(market.admin(), ride.ride_id, RideStatus.COMPLETED)

    def test_requires_admin(self, lifecycle, driver, ride):
        lifecycle.cancel_ride(driver, ride.ride_id)

        with pytest.raises(AuthorizationError):
            lifecycle.override_ride_status(driver, ride.ride_id, RideStatus.ACTIVE)


@pytest.mark.integration
class TestConcurrentBookings:
    def test_exactly_one_full_ride_booking_wins(self, lifecycle, market, driver):
        ride = market.ride(driver, total_seats=3)
        passengers = [market.passenger(), market.passenger()]
        barrier = threading.Barrier(len(passengers))

        def book(p):
            barrier.wait()
            try:
                return lifecycle.create_booking(p, ride.ride_id, 3)
            except InsufficientSeatsError as e:
                return e

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(book, passengers))

        failures = [o for o in outcomes if isinstance(o, InsufficientSeatsError)]
        assert len(failures) == 1
        assert market.get_ride(ride.ride_id).available_seats == 0

    def test_random_operations_never_oversell(self, lifecycle, market, session_factory, driver):
        ride = market.ride(driver, total_seats=6)
        passengers = [market.passenger() for _ in range(6)]
        lock = threading.Lock()
        held: dict[str, str] = {}

        def worker(seed: int) -> None:
            rng = random.Random(seed)
            for _ in range(15):
                p = rng.choice(passengers)
                with lock:
                    booking_id = held.get(p.user_id)
                try:
                    if booking_id is None:
                        booking = lifecycle.create_booking(p, ride.ride_id, rng.randint(1, 3))
                        with lock:
                            held[p.user_id] = booking.booking_id
                    elif rng.random() < 0.5:
                        lifecycle.edit_booking(p, booking_id, rng.randint(1, 4))
                    else:
                        lifecycle.cancel_booking(p, booking_id)
                        with lock:
                            held.pop(p.user_id, None)
                except (InsufficientSeatsError, DuplicateBookingError, NotModifiableError):
                    continue

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(worker, range(4)))

        stored = market.get_ride(ride.ride_id)
        confirmed = market.confirmed_seats(ride.ride_id)
        assert confirmed <= stored.total_seats
        assert stored.available_seats == stored.total_seats - confirmed
