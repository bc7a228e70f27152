"""User repository for account CRUD and moderation flags."""

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from seatbook.account import UserAccount
from seatbook.principal import Role

from ..schema import User
from ..utils import new_id, utc_now


class UserRepository:
    """Repository for user account operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, phone: str, password_hash: str, role: Role) -> UserAccount:
        """Create a new, unbanned account."""
        user = User(
            id=new_id(),
            phone=phone,
            password_hash=password_hash,
            role=role.value,
            is_banned=False,
            created_at=utc_now(),
        )
        self.session.add(user)
        self.session.flush()
        return self._to_domain(user)

    def get(self, user_id: str) -> UserAccount | None:
        stmt = select(User).where(User.id == user_id).execution_options(populate_existing=True)
        user = self.session.execute(stmt).scalar_one_or_none()
        if user is None:
            return None
        return self._to_domain(user)

    def get_by_phone(self, phone: str) -> User | None:
        """Get the ORM row by phone, including the password hash."""
        stmt = select(User).where(User.phone == phone)
        return self.session.execute(stmt).scalar_one_or_none()

    def set_banned(self, user_id: str, banned: bool) -> bool:
        """Set the banned flag; returns False when the user does not exist."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(is_banned=banned, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        user = self.session.get(User, user_id)
        if user is not None:
            user.password_hash = password_hash

    def list_by_role(
        self,
        role: Role | None = None,
        banned: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserAccount]:
        """List accounts newest first, optionally filtered by role and banned flag."""
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role.value)
        if banned is not None:
            stmt = stmt.where(User.is_banned.is_(banned))
        stmt = stmt.order_by(User.created_at.desc(), User.id).limit(limit).offset(offset)
        result = self.session.execute(stmt)
        return [self._to_domain(u) for u in result.scalars().all()]

    def count_by_role(self, role: Role) -> tuple[int, int]:
        """Return (total, banned) counts for a role."""
        stmt = select(
            func.count(),
            func.coalesce(func.sum(case((User.is_banned.is_(True), 1), else_=0)), 0),
        ).where(User.role == role.value)
        total, banned = self.session.execute(stmt).one()
        return int(total or 0), int(banned or 0)

    def _to_domain(self, user: User) -> UserAccount:
        return UserAccount(
            user_id=user.id,
            phone=user.phone,
            role=Role(user.role),
            is_banned=user.is_banned,
            created_at=user.created_at,
        )
