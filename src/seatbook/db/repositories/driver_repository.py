"""Driver profile repository for verification and completion counters."""

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from seatbook.account import DriverProfile as DriverProfileDomain
from seatbook.account import DriverReviewStatus

from ..schema import DriverProfile, User
from ..utils import utc_now

PROFILE_FIELDS = (
    "primary_phone",
    "secondary_phone",
    "address",
    "identity_number",
    "driving_license_ref",
    "photograph_ref",
    "vehicle_number",
    "car_make",
    "car_model",
)


class DriverRepository:
    """Repository for driver profile operations."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(self, profile: DriverProfileDomain) -> None:
        """Create or replace submitted profile details.

        Resubmitting details clears verification so an admin reviews them again.
        """
        row = self.session.get(DriverProfile, profile.user_id)
        values = {name: getattr(profile, name) for name in PROFILE_FIELDS}
        if row is None:
            row = DriverProfile(
                user_id=profile.user_id, is_verified=False, completed_rides=0, **values
            )
            self.session.add(row)
        else:
            for name, value in values.items():
                setattr(row, name, value)
            row.is_verified = False
        self.session.flush()

    def get(self, user_id: str) -> DriverProfileDomain | None:
        stmt = (
            select(DriverProfile, User.is_banned)
            .join(User, User.id == DriverProfile.user_id)
            .where(DriverProfile.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return self._to_domain(row[0], row[1])

    def set_verified(self, user_id: str, verified: bool = True) -> bool:
        stmt = (
            update(DriverProfile)
            .where(DriverProfile.user_id == user_id)
            .values(is_verified=verified, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1  # type: ignore[attr-defined]

    def delete(self, user_id: str) -> bool:
        stmt = (
            delete(DriverProfile)
            .where(DriverProfile.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1  # type: ignore[attr-defined]

    def increment_completed_rides(self, user_id: str) -> None:
        """Atomically bump the completed-ride counter."""
        stmt = (
            update(DriverProfile)
            .where(DriverProfile.user_id == user_id)
            .values(
                completed_rides=DriverProfile.completed_rides + 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)

    def decrement_completed_rides(self, user_id: str) -> None:
        stmt = (
            update(DriverProfile)
            .where(DriverProfile.user_id == user_id, DriverProfile.completed_rides > 0)
            .values(
                completed_rides=DriverProfile.completed_rides - 1,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(stmt)

    def list_by_status(
        self,
        status: DriverReviewStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DriverProfileDomain]:
        """List profiles newest first for an admin bucket."""
        stmt = (
            select(DriverProfile, User.is_banned)
            .join(User, User.id == DriverProfile.user_id)
            .execution_options(populate_existing=True)
        )
        if status == DriverReviewStatus.PENDING:
            stmt = stmt.where(DriverProfile.is_verified.is_(False))
        elif status == DriverReviewStatus.VERIFIED:
            stmt = stmt.where(DriverProfile.is_verified.is_(True), User.is_banned.is_(False))
        elif status == DriverReviewStatus.BANNED:
            stmt = stmt.where(User.is_banned.is_(True))
        stmt = (
            stmt.order_by(DriverProfile.created_at.desc(), DriverProfile.user_id)
            .limit(limit)
            .offset(offset)
        )
        return [self._to_domain(p, banned) for p, banned in self.session.execute(stmt).all()]

    def count_by_status(self) -> dict[str, int]:
        """Counts used by the admin overview."""
        total = self.session.execute(select(func.count()).select_from(DriverProfile)).scalar() or 0
        verified = (
            self.session.execute(
                select(func.count())
                .select_from(DriverProfile)
                .where(DriverProfile.is_verified.is_(True))
            ).scalar()
            or 0
        )
        banned = (
            self.session.execute(
                select(func.count())
                .select_from(DriverProfile)
                .join(User, User.id == DriverProfile.user_id)
                .where(User.is_banned.is_(True))
            ).scalar()
            or 0
        )
        return {
            "total": total,
            "verified": verified,
            "pending": total - verified,
            "banned": banned,
        }

    def _to_domain(self, profile: DriverProfile, is_banned: bool) -> DriverProfileDomain:
        return DriverProfileDomain(
            user_id=profile.user_id,
            primary_phone=profile.primary_phone,
            secondary_phone=profile.secondary_phone,
            address=profile.address,
            identity_number=profile.identity_number,
            driving_license_ref=profile.driving_license_ref,
            photograph_ref=profile.photograph_ref,
            vehicle_number=profile.vehicle_number,
            car_make=profile.car_make,
            car_model=profile.car_model,
            is_verified=profile.is_verified,
            completed_rides=profile.completed_rides,
            is_banned=is_banned,
            created_at=profile.created_at,
        )
