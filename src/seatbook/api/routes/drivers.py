from fastapi import APIRouter, Request

from seatbook.account import DriverProfile
from seatbook.api.dependencies import AccountsDep, PrincipalDep, ReviewsDep, StatsDep
from seatbook.api.models.drivers import DriverProfileRequest
from seatbook.api.rate_limit import booking_write_limit, limiter
from seatbook.review import RatingSummary, Review, ReviewDirection
from seatbook.stats import DriverStats

router = APIRouter()


@router.post("/profile", response_model=DriverProfile)
@limiter.limit(booking_write_limit)
def submit_profile(
    request: Request,
    body: DriverProfileRequest,
    principal: PrincipalDep,
    accounts: AccountsDep,
) -> DriverProfile:
    """Submit or resubmit driver details for admin verification."""
    return accounts.submit_driver_profile(principal, **body.model_dump())


@router.get("/{driver_id}/profile", response_model=DriverProfile)
def get_profile(driver_id: str, principal: PrincipalDep, accounts: AccountsDep) -> DriverProfile:
    return accounts.get_driver_profile(principal, driver_id)


@router.get("/{driver_id}/stats", response_model=DriverStats)
def get_stats(driver_id: str, principal: PrincipalDep, stats: StatsDep) -> DriverStats:
    return stats.driver_stats(principal, driver_id)


@router.get("/{driver_id}/rating", response_model=RatingSummary)
def get_rating(driver_id: str, principal: PrincipalDep, stats: StatsDep) -> RatingSummary:
    """Average passenger rating; ``average`` is null when the driver is unrated."""
    return stats.driver_rating(principal, driver_id)


@router.get("/{driver_id}/reviews", response_model=list[Review])
def list_reviews(driver_id: str, principal: PrincipalDep, reviews: ReviewsDep) -> list[Review]:
    """Reviews passengers left about this driver."""
    return reviews.list_reviews(principal, driver_id, ReviewDirection.PASSENGER_TO_DRIVER)
