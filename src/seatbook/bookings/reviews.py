"""Post-ride reviews in both directions."""

import logging
from collections.abc import Callable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seatbook.accounts.access import require_active
from seatbook.app_logging import log_booking_context
from seatbook.core.exceptions import (
    AuthorizationError,
    DuplicateReviewError,
    NotFoundError,
    StateError,
    ValidationError,
)
from seatbook.db.repositories import BookingRepository, ReviewRepository, RideRepository
from seatbook.db.transaction import savepoint, transaction
from seatbook.principal import Principal
from seatbook.review import Review, ReviewDirection
from seatbook.ride import RideStatus

logger = logging.getLogger(__name__)


class ReviewService:
    """Records one review per booking and direction once the ride is completed."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def submit_review(
        self,
        principal: Principal,
        booking_id: str,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        """Review the other party of a booking.

        The passenger on the booking rates the driver; the ride's driver rates
        the passenger. Anyone else is rejected.
        """
        require_active(principal)
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", details={"rating": rating})

        with log_booking_context(booking_id=booking_id, user_id=principal.user_id):
            with self._session_factory() as session, transaction(session):
                booking = BookingRepository(session).get(booking_id)
                if booking is None:
                    raise NotFoundError(
                        f"Booking {booking_id} not found", details={"booking_id": booking_id}
                    )
                ride = RideRepository(session).get(booking.ride_id)
                if ride is None:
                    raise NotFoundError(f"Ride {booking.ride_id} not found")

                if principal.user_id == booking.passenger_id:
                    direction = ReviewDirection.PASSENGER_TO_DRIVER
                    subject_id = ride.driver_id
                elif principal.user_id == ride.driver_id:
                    direction = ReviewDirection.DRIVER_TO_PASSENGER
                    subject_id = booking.passenger_id
                else:
                    raise AuthorizationError(
                        "Only the passenger or driver of a booking can review it",
                        details={"booking_id": booking_id},
                    )

                if not booking.is_confirmed or ride.status != RideStatus.COMPLETED:
                    raise StateError(
                        "Reviews open once the ride is completed",
                        details={"booking_id": booking_id, "ride_status": ride.status.value},
                    )

                reviews = ReviewRepository(session)
                if reviews.exists(booking_id, direction):
                    raise DuplicateReviewError(
                        "This booking has already been reviewed",
                        details={"booking_id": booking_id, "direction": direction.value},
                    )
                try:
                    with savepoint(session):
                        review = reviews.create(
                            booking_id=booking_id,
                            author_id=principal.user_id,
                            subject_id=subject_id,
                            direction=direction,
                            rating=rating,
                            comment=comment,
                        )
                except IntegrityError as e:
                    raise DuplicateReviewError(
                        "This booking has already been reviewed",
                        details={"booking_id": booking_id, "direction": direction.value},
                    ) from e
                except PydanticValidationError as e:
                    raise ValidationError(str(e.errors()[0]["msg"])) from e

            logger.info(
                "Review %s recorded (%s, rating %d)", review.review_id, direction.value, rating
            )
            return review

    def list_reviews(
        self, principal: Principal, subject_id: str, direction: ReviewDirection
    ) -> list[Review]:
        """Reviews written about ``subject_id`` in one direction, as stored."""
        require_active(principal)
        with self._session_factory() as session:
            return ReviewRepository(session).list_for_subject(subject_id, direction)
