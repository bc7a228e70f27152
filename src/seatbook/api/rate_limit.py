"""Rate limiting configuration using slowapi."""

from opentelemetry import metrics
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from seatbook.settings import RateLimitSettings

meter = metrics.get_meter("seatbook")

rate_limit_hits = meter.create_counter(
    name="api_rate_limit_hits_total",
    description="Total API requests rejected by rate limiting",
    unit="1",
)

WINDOW_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


def get_token_or_ip(request: Request) -> str:
    """Rate limit by bearer token if present, otherwise by IP."""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return f"token:{token}"
    return f"ip:{get_remote_address(request)}"


def booking_write_limit() -> str:
    return RateLimitSettings().booking_writes


def auth_limit() -> str:
    return RateLimitSettings().auth


limiter = Limiter(key_func=get_token_or_ip)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """429 handler with OTel tracking and a Retry-After header."""
    rate_limit_hits.add(
        1,
        {"endpoint": request.url.path, "method": request.method},
    )

    retry_after = "60"
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit:
        limit_text = str(view_rate_limit)
        for unit, seconds in WINDOW_SECONDS.items():
            if unit in limit_text:
                retry_after = str(seconds)
                break

    response = JSONResponse(
        status_code=429,
        content={"error": f"Too many requests: {exc.detail}", "code": "RateLimitExceeded"},
    )
    response.headers["retry-after"] = retry_after
    return response
