"""Tests for ReviewRepository rating summaries."""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from seatbook.db.repositories import BookingRepository, ReviewRepository
from seatbook.db.transaction import transaction
from seatbook.review import ReviewDirection


@pytest.fixture
def booking_id(session_factory, market):
    driver = market.driver()
    ride = market.ride(driver, departs_in=timedelta(days=-1))
    passenger = market.passenger()
    with session_factory() as session, transaction(session):
        booking = BookingRepository(session).create(
            passenger_id=passenger.user_id,
            ride_id=ride.ride_id,
            seats_booked=1,
            total_price=Decimal("500.00"),
        )
    return booking.booking_id, passenger.user_id, driver.user_id


@pytest.mark.unit
class TestReviewRepository:
    def test_unrated_subject_has_no_average(self, session_factory):
        with session_factory() as session:
            summary = ReviewRepository(session).rating_summary(
                "nobody", ReviewDirection.PASSENGER_TO_DRIVER
            )
        assert summary.average is None
        assert summary.review_count == 0
        assert not summary.is_rated

    def test_one_review_per_booking_and_direction(self, session_factory, booking_id):
        booking, passenger, driver = booking_id

        def create(direction, author, subject):
            with session_factory() as session, transaction(session):
                ReviewRepository(session).create(booking, author, subject, direction, 4, None)

        create(ReviewDirection.PASSENGER_TO_DRIVER, passenger, driver)
        create(ReviewDirection.DRIVER_TO_PASSENGER, driver, passenger)
        with pytest.raises(IntegrityError):
            create(ReviewDirection.PASSENGER_TO_DRIVER, passenger, driver)

    def test_summary_is_per_direction(self, session_factory, booking_id):
        booking, passenger, driver = booking_id
        with session_factory() as session, transaction(session):
            reviews = ReviewRepository(session)
            reviews.create(
                booking, passenger, driver, ReviewDirection.PASSENGER_TO_DRIVER, 5, "Great"
            )
            reviews.create(booking, driver, passenger, ReviewDirection.DRIVER_TO_PASSENGER, 3, "")

        with session_factory() as session:
            reviews = ReviewRepository(session)
            as_driver = reviews.rating_summary(driver, ReviewDirection.PASSENGER_TO_DRIVER)
            as_passenger = reviews.rating_summary(passenger, ReviewDirection.DRIVER_TO_PASSENGER)
            listed = reviews.list_for_subject(passenger, ReviewDirection.DRIVER_TO_PASSENGER)

        assert (as_driver.average, as_driver.review_count) == (5.0, 1)
        assert (as_passenger.average, as_passenger.review_count) == (3.0, 1)
        assert listed[0].comment is None
