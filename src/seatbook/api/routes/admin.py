from typing import Annotated

from fastapi import APIRouter, Query, Request

from seatbook.account import DriverProfile, DriverReviewStatus
from seatbook.api.dependencies import AccountsDep, LifecycleDep, PrincipalDep, StatsDep
from seatbook.api.models.auth import AccountResponse
from seatbook.api.models.rides import (
    RideCancellationResponse,
    RideResponse,
    RideStatusOverrideRequest,
)
from seatbook.api.rate_limit import booking_write_limit, limiter
from seatbook.principal import Role
from seatbook.stats import PlatformOverview

router = APIRouter()


@router.get("/overview", response_model=PlatformOverview)
def overview(principal: PrincipalDep, stats: StatsDep) -> PlatformOverview:
    """Platform totals and revenue, including the current calendar month."""
    return stats.platform_overview(principal)


@router.get("/users", response_model=list[AccountResponse])
def list_users(
    principal: PrincipalDep,
    accounts: AccountsDep,
    role: Annotated[Role | None, Query()] = None,
    banned: Annotated[bool | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[AccountResponse]:
    users = accounts.list_users(principal, role=role, banned=banned, limit=limit, offset=offset)
    return [AccountResponse.from_domain(u) for u in users]


@router.get("/drivers", response_model=list[DriverProfile])
def list_drivers(
    principal: PrincipalDep,
    accounts: AccountsDep,
    status: Annotated[DriverReviewStatus | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[DriverProfile]:
    return accounts.list_drivers(principal, status=status, limit=limit, offset=offset)


@router.post("/users/{user_id}/ban", response_model=AccountResponse)
@limiter.limit(booking_write_limit)
def ban_user(
    request: Request, user_id: str, principal: PrincipalDep, accounts: AccountsDep
) -> AccountResponse:
    """Ban a user. A banned driver's rides disappear from search immediately."""
    return AccountResponse.from_domain(accounts.ban_user(principal, user_id))


@router.post("/users/{user_id}/unban", response_model=AccountResponse)
@limiter.limit(booking_write_limit)
def unban_user(
    request: Request, user_id: str, principal: PrincipalDep, accounts: AccountsDep
) -> AccountResponse:
    return AccountResponse.from_domain(accounts.unban_user(principal, user_id))


@router.post("/drivers/{driver_id}/verify", response_model=DriverProfile)
@limiter.limit(booking_write_limit)
def verify_driver(
    request: Request, driver_id: str, principal: PrincipalDep, accounts: AccountsDep
) -> DriverProfile:
    return accounts.verify_driver(principal, driver_id)


@router.post("/drivers/{driver_id}/reject", status_code=204)
@limiter.limit(booking_write_limit)
def reject_driver(
    request: Request, driver_id: str, principal: PrincipalDep, accounts: AccountsDep
) -> None:
    accounts.reject_driver(principal, driver_id)


@router.post("/rides/{ride_id}/status", response_model=RideCancellationResponse)
@limiter.limit(booking_write_limit)
def override_ride_status(
    request: Request,
    ride_id: str,
    body: RideStatusOverrideRequest,
    principal: PrincipalDep,
    lifecycle: LifecycleDep,
) -> RideCancellationResponse:
    """Move a completed or cancelled ride back to active, or a completed ride to cancelled."""
    result = lifecycle.override_ride_status(principal, ride_id, body.status)
    return RideCancellationResponse(
        ride=RideResponse.from_domain(result.ride),
        bookings_cancelled=result.bookings_cancelled,
    )
