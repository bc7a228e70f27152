"""Ride repository for catalog queries and status transitions."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import extract, func, select, update
from sqlalchemy.orm import Session

from seatbook.review import ReviewDirection
from seatbook.ride import Ride as RideDomain
from seatbook.ride import RideFilters, RideStatus

from ..schema import Review, Ride, User
from ..utils import ensure_utc, new_id, utc_now


class RideRepository:
    """Repository for ride CRUD and search."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        driver_id: str,
        from_location: str,
        to_location: str,
        price: Decimal,
        total_seats: int,
        departure_time: datetime,
    ) -> RideDomain:
        """Create a new ride in ACTIVE status with every seat available."""
        ride = Ride(
            id=new_id(),
            driver_id=driver_id,
            from_location=from_location,
            to_location=to_location,
            price=price,
            total_seats=total_seats,
            available_seats=total_seats,
            departure_time=ensure_utc(departure_time),
            status=RideStatus.ACTIVE.value,
            created_at=utc_now(),
        )
        self.session.add(ride)
        self.session.flush()
        return self._to_domain(ride)

    def get(self, ride_id: str, for_update: bool = False) -> RideDomain | None:
        """Get ride by ID, returning domain model.

        ``for_update`` takes a row lock on databases that support it.
        """
        stmt = select(Ride).where(Ride.id == ride_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        ride = self.session.execute(stmt).scalar_one_or_none()
        if ride is None:
            return None
        return self._to_domain(ride)

    def update_price(self, ride_id: str, price: Decimal) -> None:
        stmt = (
            update(Ride)
            .where(Ride.id == ride_id)
            .values(price=price, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)

    def set_status(
        self,
        ride_id: str,
        new_status: RideStatus,
        expected: RideStatus | None = None,
    ) -> bool:
        """Set status with the matching timestamp.

        When ``expected`` is given the update only applies if the ride is
        still in that status; returns whether a row changed.
        """
        now = utc_now()
        values: dict[str, object] = {"status": new_status.value, "updated_at": now}
        if new_status == RideStatus.COMPLETED:
            values["completed_at"] = now
        elif new_status == RideStatus.CANCELLED:
            values["cancelled_at"] = now
        elif new_status == RideStatus.ACTIVE:
            values["completed_at"] = None
            values["cancelled_at"] = None

        stmt = (
            update(Ride)
            .where(Ride.id == ride_id)
            .execution_options(synchronize_session=False)
        )
        if expected is not None:
            stmt = stmt.where(Ride.status == expected.value)
        result = self.session.execute(stmt.values(**values))
        return result.rowcount == 1  # type: ignore[attr-defined]

    def list_by_driver(self, driver_id: str) -> list[RideDomain]:
        """List rides by driver, soonest departure last."""
        stmt = (
            select(Ride)
            .where(Ride.driver_id == driver_id)
            .order_by(Ride.departure_time.desc())
            .execution_options(populate_existing=True)
        )
        result = self.session.execute(stmt)
        return [self._to_domain(r) for r in result.scalars().all()]

    def list_active(self, filters: RideFilters, now: datetime) -> list[RideDomain]:
        """List bookable rides: active, departing in the future, seats left, driver not banned."""
        stmt = (
            select(Ride)
            .join(User, User.id == Ride.driver_id)
            .where(
                Ride.status == RideStatus.ACTIVE.value,
                Ride.departure_time > ensure_utc(now),
                Ride.available_seats > 0,
                User.is_banned.is_(False),
            )
        )

        if filters.from_contains:
            stmt = stmt.where(Ride.from_location.icontains(filters.from_contains, autoescape=True))
        if filters.to_contains:
            stmt = stmt.where(Ride.to_location.icontains(filters.to_contains, autoescape=True))
        if filters.price_min is not None:
            stmt = stmt.where(Ride.price >= filters.price_min)
        if filters.price_max is not None:
            stmt = stmt.where(Ride.price <= filters.price_max)
        if filters.departs_after is not None:
            stmt = stmt.where(Ride.departure_time >= ensure_utc(filters.departs_after))
        if filters.departs_before is not None:
            stmt = stmt.where(Ride.departure_time <= ensure_utc(filters.departs_before))
        if filters.time_of_day is not None:
            start_hour, end_hour = filters.time_of_day.hours
            hour = extract("hour", Ride.departure_time)
            stmt = stmt.where(hour >= start_hour, hour < end_hour)
        if filters.min_rating is not None:
            ratings = (
                select(
                    Review.subject_id.label("driver_id"),
                    func.avg(Review.rating).label("avg_rating"),
                )
                .where(Review.direction == ReviewDirection.PASSENGER_TO_DRIVER.value)
                .group_by(Review.subject_id)
                .subquery()
            )
            stmt = stmt.join(ratings, ratings.c.driver_id == Ride.driver_id).where(
                ratings.c.avg_rating >= filters.min_rating
            )

        stmt = (
            stmt.order_by(Ride.departure_time.asc(), Ride.id)
            .limit(filters.limit)
            .offset(filters.offset)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(r) for r in self.session.execute(stmt).scalars().all()]

    def count_by_status(self) -> dict[str, int]:
        stmt = select(Ride.status, func.count()).group_by(Ride.status)
        counts = {status.value: 0 for status in RideStatus}
        for status, count in self.session.execute(stmt).all():
            counts[status] = count
        return counts

    def _to_domain(self, ride: Ride) -> RideDomain:
        """Convert ORM model to domain model."""
        return RideDomain(
            ride_id=ride.id,
            driver_id=ride.driver_id,
            from_location=ride.from_location,
            to_location=ride.to_location,
            price=ride.price,
            total_seats=ride.total_seats,
            available_seats=ride.available_seats,
            departure_time=ride.departure_time,
            status=RideStatus(ride.status),
            created_at=ride.created_at,
            completed_at=ride.completed_at,
            cancelled_at=ride.cancelled_at,
        )
