"""Read-only earnings and rating statistics.

Nothing here is stored: every figure is derived on demand from confirmed
bookings on completed rides and from reviews.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy.orm import Session

from seatbook.accounts.access import require_active, require_owner_or_admin, require_role
from seatbook.core.exceptions import NotFoundError
from seatbook.db.repositories import (
    BookingRepository,
    DriverRepository,
    ReviewRepository,
    RideRepository,
    UserRepository,
)
from seatbook.db.utils import utc_now
from seatbook.principal import Principal, Role
from seatbook.review import RatingSummary, ReviewDirection
from seatbook.ride import RideStatus


class DriverStats(BaseModel):
    driver_id: str
    total_rides: int
    active_rides: int
    completed_rides: int
    total_earnings: Decimal
    rating: RatingSummary


class PlatformOverview(BaseModel):
    """Admin dashboard totals."""

    passengers_total: int
    passengers_banned: int
    drivers_total: int
    drivers_verified: int
    drivers_pending: int
    drivers_banned: int
    rides_active: int
    rides_completed: int
    rides_cancelled: int
    total_revenue: Decimal
    revenue_this_month: Decimal


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class EarningsAggregator:
    """Derives driver earnings, ratings and platform totals."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_factory = session_factory
        self._clock = clock

    def driver_earnings(self, principal: Principal, driver_id: str) -> Decimal:
        """Sum of seats * price over confirmed bookings on the driver's completed rides."""
        require_owner_or_admin(principal, driver_id)
        with self._session_factory() as session:
            return BookingRepository(session).completed_revenue(driver_id=driver_id)

    def ride_earnings(self, principal: Principal, ride_id: str) -> Decimal:
        """Earnings of a single ride; zero until the ride is completed.

        Only the ride's driver and admins may see them.
        """
        require_active(principal)
        with self._session_factory() as session:
            ride = RideRepository(session).get(ride_id)
            if ride is None:
                raise NotFoundError(f"Ride {ride_id} not found", details={"ride_id": ride_id})
            require_owner_or_admin(principal, ride.driver_id)
            return BookingRepository(session).completed_revenue(ride_id=ride_id)

    def driver_rating(self, principal: Principal, driver_id: str) -> RatingSummary:
        """Mean passenger rating; ``average`` is None when the driver is unrated."""
        require_active(principal)
        with self._session_factory() as session:
            return ReviewRepository(session).rating_summary(
                driver_id, ReviewDirection.PASSENGER_TO_DRIVER
            )

    def passenger_rating(self, principal: Principal, passenger_id: str) -> RatingSummary:
        require_active(principal)
        with self._session_factory() as session:
            return ReviewRepository(session).rating_summary(
                passenger_id, ReviewDirection.DRIVER_TO_PASSENGER
            )

    def driver_stats(self, principal: Principal, driver_id: str) -> DriverStats:
        require_owner_or_admin(principal, driver_id)
        with self._session_factory() as session:
            profile = DriverRepository(session).get(driver_id)
            if profile is None:
                raise NotFoundError(
                    f"Driver {driver_id} not found", details={"driver_id": driver_id}
                )
            rides = RideRepository(session).list_by_driver(driver_id)
            earnings = BookingRepository(session).completed_revenue(driver_id=driver_id)
            rating = ReviewRepository(session).rating_summary(
                driver_id, ReviewDirection.PASSENGER_TO_DRIVER
            )

        return DriverStats(
            driver_id=driver_id,
            total_rides=len(rides),
            active_rides=sum(1 for r in rides if r.status == RideStatus.ACTIVE),
            completed_rides=profile.completed_rides,
            total_earnings=earnings,
            rating=rating,
        )

    def platform_overview(self, principal: Principal) -> PlatformOverview:
        require_role(principal, Role.ADMIN)
        with self._session_factory() as session:
            passengers_total, passengers_banned = UserRepository(session).count_by_role(
                Role.PASSENGER
            )
            drivers = DriverRepository(session).count_by_status()
            rides = RideRepository(session).count_by_status()
            bookings = BookingRepository(session)
            total_revenue = bookings.completed_revenue()
            this_month = bookings.completed_revenue(completed_since=month_start(self._clock()))

        return PlatformOverview(
            passengers_total=passengers_total,
            passengers_banned=passengers_banned,
            drivers_total=drivers["total"],
            drivers_verified=drivers["verified"],
            drivers_pending=drivers["pending"],
            drivers_banned=drivers["banned"],
            rides_active=rides[RideStatus.ACTIVE.value],
            rides_completed=rides[RideStatus.COMPLETED.value],
            rides_cancelled=rides[RideStatus.CANCELLED.value],
            total_revenue=total_revenue,
            revenue_this_month=this_month,
        )
