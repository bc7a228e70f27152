"""Test factories for seeding users, drivers and rides directly through the repositories."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from seatbook.account import DriverProfile
from seatbook.accounts.tokens import hash_password
from seatbook.booking import BookingStatus
from seatbook.db.repositories import DriverRepository, RideRepository, UserRepository
from seatbook.db.schema import Booking
from seatbook.db.transaction import transaction
from seatbook.principal import Principal, Role
from seatbook.ride import Ride

TEST_PASSWORD = "correct-horse"

# Every seeded account shares one password hash.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class MarketplaceFactory:
    """Creates accounts and rides with sensible defaults."""

    def __init__(self, session_factory: Callable[[], Session], clock: FrozenClock):
        self.session_factory = session_factory
        self.clock = clock
        self._phones = itertools.count(1)

    def next_phone(self) -> str:
        return f"+9230000{next(self._phones):05d}"

    def account(self, role: Role, phone: str | None = None) -> Principal:
        with self.session_factory() as session, transaction(session):
            account = UserRepository(session).create(
                phone or self.next_phone(), _PASSWORD_HASH, role
            )
        return account.to_principal()

    def passenger(self, phone: str | None = None) -> Principal:
        return self.account(Role.PASSENGER, phone)

    def admin(self) -> Principal:
        return self.account(Role.ADMIN)

    def driver(self, verified: bool = True, car_make: str = "Toyota") -> Principal:
        principal = self.account(Role.DRIVER)
        with self.session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            drivers.upsert(
                DriverProfile(
                    user_id=principal.user_id,
                    primary_phone=self.next_phone(),
                    address="12 Canal Road",
                    identity_number="35202-1234567-1",
                    driving_license_ref="https://files.example/licence.png",
                    vehicle_number="lea-1234",
                    car_make=car_make,
                    car_model="Corolla",
                )
            )
            if verified:
                drivers.set_verified(principal.user_id, True)
        return principal

    def ban(self, principal: Principal) -> Principal:
        with self.session_factory() as session, transaction(session):
            UserRepository(session).set_banned(principal.user_id, True)
        return principal.model_copy(update={"banned": True})

    def ride(
        self,
        driver: Principal,
        total_seats: int = 4,
        price: str = "500.00",
        departs_in: timedelta = timedelta(days=1),
        departure_time: datetime | None = None,
        from_location: str = "Lahore",
        to_location: str = "Islamabad",
    ) -> Ride:
        with self.session_factory() as session, transaction(session):
            return RideRepository(session).create(
                driver_id=driver.user_id,
                from_location=from_location,
                to_location=to_location,
                price=Decimal(price),
                total_seats=total_seats,
                departure_time=departure_time or self.clock() + departs_in,
            )

    def get_ride(self, ride_id: str) -> Ride:
        with self.session_factory() as session:
            ride = RideRepository(session).get(ride_id)
        assert ride is not None
        return ride

    def confirmed_seats(self, ride_id: str) -> int:
        """Seats held by confirmed bookings, read straight from the table."""
        stmt = select(func.coalesce(func.sum(Booking.seats_booked), 0)).where(
            Booking.ride_id == ride_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        with self.session_factory() as session:
            return int(session.execute(stmt).scalar() or 0)
