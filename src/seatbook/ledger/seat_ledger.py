"""Seat ledger: the single writer of ``rides.available_seats``.

Every mutation is one conditional UPDATE whose affected-row count decides
the outcome, so two concurrent reservations can never both take the last
seats. Callers run ledger operations inside ``transaction(session)`` so a
later failure in the same unit of work rolls the seat change back too.
"""

import logging

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from seatbook import metrics
from seatbook.core.exceptions import (
    InsufficientSeatsError,
    InvalidSeatCountError,
    NotFoundError,
    RideNotActiveError,
)
from seatbook.db.schema import Ride
from seatbook.db.utils import utc_now
from seatbook.ride import RideStatus

logger = logging.getLogger(__name__)


class SeatLedger:
    """Reserve and release seats on a ride without read-then-write races."""

    def __init__(self, session: Session):
        self.session = session

    def available(self, ride_id: str) -> int:
        """Current available seats; raises NotFoundError for unknown rides."""
        return self._read(ride_id)[0]

    def reserve(self, ride_id: str, count: int) -> None:
        """Take ``count`` seats if at least that many are available.

        Raises:
            InvalidSeatCountError: count is not positive
            NotFoundError: ride does not exist
            RideNotActiveError: ride is completed or cancelled
            InsufficientSeatsError: fewer than ``count`` seats remain (nothing changed)
        """
        _check_count(count)
        stmt = (
            update(Ride)
            .where(
                Ride.id == ride_id,
                Ride.status == RideStatus.ACTIVE.value,
                Ride.available_seats >= count,
            )
            .values(available_seats=Ride.available_seats - count, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if self.session.execute(stmt).rowcount == 1:  # type: ignore[attr-defined]
            metrics.seats_reserved.add(count)
            logger.debug("Reserved %d seat(s) on ride %s", count, ride_id)
            return

        available, _, status = self._read(ride_id)
        if status != RideStatus.ACTIVE.value:
            raise RideNotActiveError(
                f"Ride {ride_id} is {status}", details={"ride_id": ride_id, "status": status}
            )
        raise InsufficientSeatsError(requested=count, available=available, ride_id=ride_id)

    def release(self, ride_id: str, count: int) -> None:
        """Return ``count`` seats, never exceeding the ride's capacity."""
        _check_count(count)
        available, total, _ = self._read(ride_id)
        if available + count > total:
            logger.warning(
                "Release of %d seat(s) on ride %s would exceed capacity (%d/%d); clamping",
                count,
                ride_id,
                available,
                total,
            )

        restored = Ride.available_seats + count
        stmt = (
            update(Ride)
            .where(Ride.id == ride_id)
            .values(
                available_seats=case(
                    (restored > Ride.total_seats, Ride.total_seats),
                    else_=restored,
                ),
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)
        metrics.seats_released.add(count)
        logger.debug("Released %d seat(s) on ride %s", count, ride_id)

    def adjust(self, ride_id: str, delta: int) -> None:
        """Signed change in consumption: positive reserves, negative releases."""
        if delta > 0:
            self.reserve(ride_id, delta)
        elif delta < 0:
            self.release(ride_id, -delta)

    def reset(self, ride_id: str) -> None:
        """Make every seat available again; used once a ride has no confirmed bookings."""
        stmt = (
            update(Ride)
            .where(Ride.id == ride_id)
            .values(available_seats=Ride.total_seats, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)

    def _read(self, ride_id: str) -> tuple[int, int, str]:
        stmt = select(Ride.available_seats, Ride.total_seats, Ride.status).where(
            Ride.id == ride_id
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            raise NotFoundError(f"Ride {ride_id} not found", details={"ride_id": ride_id})
        return row[0], row[1], row[2]


def _check_count(count: int) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidSeatCountError(
            f"Seat count must be a positive integer, got {count!r}", details={"seats": count}
        )
