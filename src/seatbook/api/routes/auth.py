from fastapi import APIRouter, Request

from seatbook.api.dependencies import AccountsDep, PrincipalDep
from seatbook.api.models.auth import (
    AccountResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
)
from seatbook.api.rate_limit import auth_limit, limiter
from seatbook.principal import Role

router = APIRouter()


@router.post("/register", response_model=AccountResponse, status_code=201)
@limiter.limit(auth_limit)
def register(request: Request, body: RegisterRequest, accounts: AccountsDep) -> AccountResponse:
    """Create a passenger or driver account."""
    account = accounts.register(body.phone, body.password, Role(body.role))
    return AccountResponse.from_domain(account)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(auth_limit)
def login(request: Request, body: LoginRequest, accounts: AccountsDep) -> TokenResponse:
    result = accounts.authenticate(body.phone, body.password)
    return TokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        account=AccountResponse.from_domain(result.account),
    )


@router.get("/me", response_model=AccountResponse)
def me(principal: PrincipalDep, accounts: AccountsDep) -> AccountResponse:
    """Current account, including its banned flag so clients can show the banned page."""
    return AccountResponse.from_domain(accounts.get_account(principal.user_id))
