"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from seatbook.accounts import AccountService
from seatbook.bookings import BookingLifecycleManager, ReviewService
from seatbook.catalog import RideCatalog
from seatbook.core.exceptions import AuthenticationError
from seatbook.principal import Principal
from seatbook.stats import EarningsAggregator

bearer_scheme = HTTPBearer(auto_error=False)


def get_accounts(request: Request) -> AccountService:
    """Retrieve AccountService from app state."""
    return request.app.state.accounts  # type: ignore[no-any-return]


def get_lifecycle(request: Request) -> BookingLifecycleManager:
    return request.app.state.lifecycle  # type: ignore[no-any-return]


def get_catalog(request: Request) -> RideCatalog:
    return request.app.state.catalog  # type: ignore[no-any-return]


def get_reviews(request: Request) -> ReviewService:
    return request.app.state.reviews  # type: ignore[no-any-return]


def get_stats(request: Request) -> EarningsAggregator:
    return request.app.state.stats  # type: ignore[no-any-return]


AccountsDep = Annotated[AccountService, Depends(get_accounts)]
LifecycleDep = Annotated[BookingLifecycleManager, Depends(get_lifecycle)]
CatalogDep = Annotated[RideCatalog, Depends(get_catalog)]
ReviewsDep = Annotated[ReviewService, Depends(get_reviews)]
StatsDep = Annotated[EarningsAggregator, Depends(get_stats)]


def get_principal(
    accounts: AccountsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Principal:
    """Resolve the bearer token to a principal loaded fresh from the store.

    Banned principals are returned as-is; the services reject them.
    """
    if credentials is None:
        raise AuthenticationError("Missing bearer token")
    return accounts.resolve_principal(credentials.credentials)


PrincipalDep = Annotated[Principal, Depends(get_principal)]
