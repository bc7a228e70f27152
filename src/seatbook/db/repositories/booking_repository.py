"""Booking repository for reservation rows and revenue queries."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from seatbook.booking import Booking as BookingDomain
from seatbook.booking import BookingStatus
from seatbook.ride import RideStatus, money

from ..schema import Booking, Ride, User
from ..utils import ensure_utc, new_id, utc_now


class BookingRepository:
    """Repository for booking CRUD with compare-and-swap updates."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        passenger_id: str,
        ride_id: str,
        seats_booked: int,
        total_price: Decimal,
    ) -> BookingDomain:
        """Create a new booking in CONFIRMED status."""
        now = utc_now()
        booking = Booking(
            id=new_id(),
            passenger_id=passenger_id,
            ride_id=ride_id,
            seats_booked=seats_booked,
            total_price=total_price,
            status=BookingStatus.CONFIRMED.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(booking)
        self.session.flush()
        return self._to_domain(booking)

    def get(self, booking_id: str, for_update: bool = False) -> BookingDomain | None:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        booking = self.session.execute(stmt).scalar_one_or_none()
        if booking is None:
            return None
        return self._to_domain(booking)

    def find_confirmed(self, passenger_id: str, ride_id: str) -> BookingDomain | None:
        stmt = select(Booking).where(
            Booking.passenger_id == passenger_id,
            Booking.ride_id == ride_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        booking = self.session.execute(stmt).scalars().first()
        if booking is None:
            return None
        return self._to_domain(booking)

    def update_seats(
        self,
        booking_id: str,
        expected_seats: int,
        new_seats: int,
        new_total: Decimal,
    ) -> bool:
        """Change the seat count only if the row still holds ``expected_seats``."""
        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.seats_booked == expected_seats,
            )
            .values(seats_booked=new_seats, total_price=new_total, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1  # type: ignore[attr-defined]

    def mark_cancelled(self, booking_id: str) -> bool:
        """Flip a confirmed booking to CANCELLED; False if it was not confirmed."""
        now = utc_now()
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.CANCELLED.value, cancelled_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1  # type: ignore[attr-defined]

    def cancel_all_for_ride(self, ride_id: str) -> int:
        """Cancel every confirmed booking on a ride; returns how many changed."""
        now = utc_now()
        stmt = (
            update(Booking)
            .where(Booking.ride_id == ride_id, Booking.status == BookingStatus.CONFIRMED.value)
            .values(status=BookingStatus.CANCELLED.value, cancelled_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount  # type: ignore[attr-defined,no-any-return]

    def list_by_passenger(self, passenger_id: str) -> list[BookingDomain]:
        stmt = (
            select(Booking)
            .where(Booking.passenger_id == passenger_id)
            .order_by(Booking.created_at.desc(), Booking.id)
            .execution_options(populate_existing=True)
        )
        return [self._to_domain(b) for b in self.session.execute(stmt).scalars().all()]

    def list_confirmed_for_ride(self, ride_id: str) -> list[tuple[BookingDomain, str]]:
        """Confirmed bookings on a ride with each passenger's phone."""
        stmt = (
            select(Booking, User.phone)
            .join(User, User.id == Booking.passenger_id)
            .where(Booking.ride_id == ride_id, Booking.status == BookingStatus.CONFIRMED.value)
            .order_by(Booking.created_at, Booking.id)
            .execution_options(populate_existing=True)
        )
        return [(self._to_domain(b), phone) for b, phone in self.session.execute(stmt).all()]

    def completed_revenue(
        self,
        driver_id: str | None = None,
        ride_id: str | None = None,
        completed_since: datetime | None = None,
    ) -> Decimal:
        """Sum of seats_booked * ride.price over confirmed bookings on completed rides."""
        stmt = (
            select(func.coalesce(func.sum(Booking.seats_booked * Ride.price), 0))
            .join(Ride, Ride.id == Booking.ride_id)
            .where(
                Booking.status == BookingStatus.CONFIRMED.value,
                Ride.status == RideStatus.COMPLETED.value,
            )
        )
        if driver_id is not None:
            stmt = stmt.where(Ride.driver_id == driver_id)
        if ride_id is not None:
            stmt = stmt.where(Ride.id == ride_id)
        if completed_since is not None:
            stmt = stmt.where(Ride.completed_at >= ensure_utc(completed_since))
        return money(self.session.execute(stmt).scalar() or 0)

    def completed_revenue_by_ride(self, driver_id: str) -> dict[str, Decimal]:
        """Per-ride earnings for a driver's completed rides."""
        stmt = (
            select(Ride.id, func.sum(Booking.seats_booked * Ride.price))
            .join(Ride, Ride.id == Booking.ride_id)
            .where(
                Ride.driver_id == driver_id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Ride.status == RideStatus.COMPLETED.value,
            )
            .group_by(Ride.id)
        )
        return {ride_id: money(total or 0) for ride_id, total in self.session.execute(stmt).all()}

    def _to_domain(self, booking: Booking) -> BookingDomain:
        return BookingDomain(
            booking_id=booking.id,
            passenger_id=booking.passenger_id,
            ride_id=booking.ride_id,
            seats_booked=booking.seats_booked,
            total_price=booking.total_price,
            status=BookingStatus(booking.status),
            created_at=booking.created_at,
            updated_at=booking.updated_at,
            cancelled_at=booking.cancelled_at,
        )
