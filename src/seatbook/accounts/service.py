"""Account registration, login, driver verification and moderation."""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seatbook.account import DriverProfile, DriverReviewStatus, UserAccount, normalize_phone
from seatbook.accounts.access import require_active, require_role
from seatbook.accounts.tokens import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from seatbook.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    StateError,
    ValidationError,
)
from seatbook.db.repositories import DriverRepository, UserRepository
from seatbook.db.transaction import transaction
from seatbook.principal import Principal, Role
from seatbook.settings import AuthSettings

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SELF_SERVICE_ROLES = (Role.PASSENGER, Role.DRIVER)


class LoginResult(BaseModel):
    account: UserAccount
    access_token: str
    token_type: str = "bearer"


class AccountService:
    """Credential store and admin moderation over user accounts."""

    def __init__(self, session_factory: Callable[[], Session], settings: AuthSettings):
        self._session_factory = session_factory
        self._settings = settings

    def register(self, phone: str, password: str, role: Role) -> UserAccount:
        """Create a passenger or driver account.

        Raises:
            ValidationError: malformed phone, short password or a privileged role
            StateError: the phone number is already registered
        """
        if role not in SELF_SERVICE_ROLES:
            raise ValidationError(
                "Only passenger and driver accounts can be registered",
                details={"role": role.value},
            )
        return self._create_account(phone, password, role)

    def authenticate(self, phone: str, password: str) -> LoginResult:
        """Verify credentials and issue a token.

        Banned users can still log in; every core operation rejects them.
        """
        try:
            phone = normalize_phone(phone)
        except ValueError as e:
            raise AuthenticationError("Invalid phone number or password") from e

        with self._session_factory() as session:
            user = UserRepository(session).get_by_phone(phone)
            if user is None or not verify_password(password, user.password_hash):
                logger.warning("Failed login attempt for %s", phone)
                raise AuthenticationError("Invalid phone number or password")
            account = _load_account(UserRepository(session), user.id)

        logger.info("User %s logged in", account.user_id)
        return LoginResult(
            account=account,
            access_token=create_access_token(account.user_id, self._settings),
        )

    def resolve_principal(self, token: str) -> Principal:
        """Map a bearer token to a principal loaded fresh from the store."""
        user_id = decode_token(token, self._settings)
        with self._session_factory() as session:
            account = UserRepository(session).get(user_id)
        if account is None:
            raise AuthenticationError("Invalid or expired token")
        return account.to_principal()

    def get_account(self, user_id: str) -> UserAccount:
        with self._session_factory() as session:
            return _load_account(UserRepository(session), user_id)

    # --- Drivers ---

    def submit_driver_profile(self, principal: Principal, **fields: Any) -> DriverProfile:
        """Create or replace the caller's driver profile; it awaits admin verification."""
        require_role(principal, Role.DRIVER)
        try:
            profile = DriverProfile(user_id=principal.user_id, **fields)
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "profile"
            raise ValidationError(f"{field}: {error['msg']}", details={"field": field}) from e

        with self._session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            drivers.upsert(profile)
            saved = _load_profile(drivers, principal.user_id)

        logger.info("Driver profile submitted by %s; pending verification", principal.user_id)
        return saved

    def get_driver_profile(self, principal: Principal, driver_id: str) -> DriverProfile:
        require_active(principal)
        with self._session_factory() as session:
            return _load_profile(DriverRepository(session), driver_id)

    # --- Admin ---

    def ban_user(self, admin: Principal, user_id: str) -> UserAccount:
        return self._set_banned(admin, user_id, True)

    def unban_user(self, admin: Principal, user_id: str) -> UserAccount:
        return self._set_banned(admin, user_id, False)

    def verify_driver(self, admin: Principal, driver_id: str) -> DriverProfile:
        require_role(admin, Role.ADMIN)
        with self._session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            if not drivers.set_verified(driver_id, True):
                raise NotFoundError(
                    f"Driver {driver_id} not found", details={"driver_id": driver_id}
                )
            profile = _load_profile(drivers, driver_id)
        logger.info("Driver %s verified by admin %s", driver_id, admin.user_id)
        return profile

    def reject_driver(self, admin: Principal, driver_id: str) -> None:
        """Discard a pending profile so the driver can resubmit."""
        require_role(admin, Role.ADMIN)
        with self._session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            profile = drivers.get(driver_id)
            if profile is None:
                raise NotFoundError(
                    f"Driver {driver_id} not found", details={"driver_id": driver_id}
                )
            if profile.is_verified:
                raise StateError(
                    "Verified drivers cannot be rejected; ban them instead",
                    details={"driver_id": driver_id},
                )
            drivers.delete(driver_id)
        logger.info("Driver %s rejected by admin %s", driver_id, admin.user_id)

    def list_users(
        self,
        admin: Principal,
        role: Role | None = None,
        banned: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[UserAccount]:
        require_role(admin, Role.ADMIN)
        with self._session_factory() as session:
            return UserRepository(session).list_by_role(
                role=role, banned=banned, limit=limit, offset=offset
            )

    def list_drivers(
        self,
        admin: Principal,
        status: DriverReviewStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[DriverProfile]:
        require_role(admin, Role.ADMIN)
        with self._session_factory() as session:
            return DriverRepository(session).list_by_status(status, limit=limit, offset=offset)

    def bootstrap_admin(self) -> UserAccount | None:
        """Create the configured admin account if it does not exist yet."""
        if not self._settings.admin_phone:
            return None
        phone = normalize_phone(self._settings.admin_phone)
        with self._session_factory() as session:
            existing = UserRepository(session).get_by_phone(phone)
            if existing is not None:
                return _load_account(UserRepository(session), existing.id)
        account = self._create_account(phone, self._settings.admin_password, Role.ADMIN)
        logger.info("Bootstrapped admin account %s", account.user_id)
        return account

    def _create_account(self, phone: str, password: str, role: Role) -> UserAccount:
        try:
            phone = normalize_phone(phone)
        except ValueError as e:
            raise ValidationError(str(e), details={"field": "phone"}) from e
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                details={"field": "password"},
            )

        try:
            with self._session_factory() as session, transaction(session):
                users = UserRepository(session)
                if users.get_by_phone(phone) is not None:
                    raise StateError("Phone number is already registered")
                account = users.create(phone, hash_password(password), role)
        except IntegrityError as e:
            raise StateError("Phone number is already registered") from e

        logger.info("Registered %s account %s", role.value, account.user_id)
        return account

    def _set_banned(self, admin: Principal, user_id: str, banned: bool) -> UserAccount:
        require_role(admin, Role.ADMIN)
        if admin.user_id == user_id:
            raise ValidationError("Admins cannot change their own ban status")
        with self._session_factory() as session, transaction(session):
            users = UserRepository(session)
            if not users.set_banned(user_id, banned):
                raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
            account = _load_account(users, user_id)
        logger.info(
            "User %s %s by admin %s", user_id, "banned" if banned else "unbanned", admin.user_id
        )
        return account


def _load_account(users: UserRepository, user_id: str) -> UserAccount:
    account = users.get(user_id)
    if account is None:
        raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
    return account


def _load_profile(drivers: DriverRepository, driver_id: str) -> DriverProfile:
    profile = drivers.get(driver_id)
    if profile is None:
        raise NotFoundError(f"Driver {driver_id} not found", details={"driver_id": driver_id})
    return profile
