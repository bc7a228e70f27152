"""Tests for UserRepository and DriverRepository."""

import pytest
from sqlalchemy.exc import IntegrityError

from seatbook.account import DriverReviewStatus
from seatbook.db.repositories import DriverRepository, UserRepository
from seatbook.db.transaction import transaction
from seatbook.principal import Role


@pytest.mark.unit
class TestUserRepository:
    def test_phone_is_unique(self, session_factory):
        with session_factory() as session, transaction(session):
            UserRepository(session).create("+923001112223", "hash", Role.PASSENGER)

        with session_factory() as session, pytest.raises(IntegrityError):  # noqa: SIM117
            with transaction(session):
                UserRepository(session).create("+923001112223", "hash", Role.DRIVER)

    def test_set_banned(self, session_factory, market):
        passenger = market.passenger()

        with session_factory() as session, transaction(session):
            users = UserRepository(session)
            assert users.set_banned(passenger.user_id, True)
            assert not users.set_banned("missing", True)
            assert users.get(passenger.user_id).to_principal().banned

    def test_list_and_count_by_role(self, session_factory, market):
        market.passenger()
        banned = market.passenger()
        market.driver()
        market.ban(banned)

        with session_factory() as session:
            users = UserRepository(session)
            assert users.count_by_role(Role.PASSENGER) == (2, 1)
            assert len(users.list_by_role(role=Role.PASSENGER)) == 2
            assert [u.user_id for u in users.list_by_role(banned=True)] == [banned.user_id]
            assert len(users.list_by_role(role=Role.PASSENGER, limit=1)) == 1


@pytest.mark.unit
class TestDriverRepository:
    def test_resubmission_clears_verification(self, session_factory, market):
        driver = market.driver(verified=True)

        with session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            profile = drivers.get(driver.user_id)
            assert profile.is_verified
            drivers.upsert(profile.model_copy(update={"car_model": "Civic"}))
            updated = drivers.get(driver.user_id)

        assert not updated.is_verified
        assert updated.car_model == "Civic"

    def test_completed_rides_counter_never_negative(self, session_factory, market):
        driver = market.driver()

        with session_factory() as session, transaction(session):
            drivers = DriverRepository(session)
            drivers.increment_completed_rides(driver.user_id)
            drivers.decrement_completed_rides(driver.user_id)
            drivers.decrement_completed_rides(driver.user_id)
            assert drivers.get(driver.user_id).completed_rides == 0

    def test_list_by_status_buckets(self, session_factory, market):
        verified = market.driver(verified=True)
        pending = market.driver(verified=False)
        banned = market.ban(market.driver(verified=True))

        with session_factory() as session:
            drivers = DriverRepository(session)

            def ids(status):
                return {p.user_id for p in drivers.list_by_status(status)}

            assert ids(DriverReviewStatus.VERIFIED) == {verified.user_id}
            assert ids(DriverReviewStatus.PENDING) == {pending.user_id}
            assert ids(DriverReviewStatus.BANNED) == {banned.user_id}
            assert drivers.count_by_status() == {
                "total": 3,
                "verified": 2,
                "pending": 1,
                "banned": 1,
            }
