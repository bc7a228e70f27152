"""FastAPI application factory for the booking service."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session

from seatbook import __version__
from seatbook.accounts import AccountService
from seatbook.api.errors import register_error_handlers
from seatbook.api.middleware import CorrelationIdMiddleware, SecurityHeadersMiddleware
from seatbook.api.rate_limit import limiter, rate_limit_exceeded_handler
from seatbook.api.routes import admin, auth, bookings, drivers, passengers, rides
from seatbook.bookings import BookingLifecycleManager, ReviewService
from seatbook.catalog import RideCatalog
from seatbook.settings import Settings, get_settings
from seatbook.stats import EarningsAggregator

logger = logging.getLogger(__name__)


def create_app(
    session_factory: Callable[[], Session],
    settings: Settings | None = None,
) -> FastAPI:
    """Create FastAPI application with injected dependencies.

    Args:
        session_factory: sessionmaker bound to an initialized database
        settings: Application settings; loaded from the environment when omitted
    """
    settings = settings or get_settings()

    accounts = AccountService(session_factory, settings.auth)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the bootstrap admin account on startup."""
        admin = accounts.bootstrap_admin()
        if admin is not None:
            logger.info("Admin account ready: %s", admin.user_id)
        yield

    app = FastAPI(
        title="Seatbook Ride Booking API",
        version=__version__,
        description="Seat inventory and booking lifecycle for a ride-sharing marketplace",
        lifespan=lifespan,
    )

    FastAPIInstrumentor.instrument_app(app)

    limiter.enabled = settings.rate_limit.enabled
    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded, rate_limit_exceeded_handler  # type: ignore[arg-type]
    )
    register_error_handlers(app)

    # Set services immediately (not in lifespan) so they're available for testing
    app.state.settings = settings
    app.state.accounts = accounts
    app.state.lifecycle = BookingLifecycleManager(session_factory, settings.booking)
    app.state.catalog = RideCatalog(session_factory)
    app.state.reviews = ReviewService(session_factory)
    app.state.stats = EarningsAggregator(session_factory)

    origins = [o.strip() for o in settings.cors.origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(drivers.router, prefix="/drivers", tags=["drivers"])
    app.include_router(rides.router, prefix="/rides", tags=["rides"])
    app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
    app.include_router(passengers.router, prefix="/passengers", tags=["passengers"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint for monitoring (unauthenticated for infrastructure)."""
        return {"status": "healthy"}

    return app
