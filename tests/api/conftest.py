import pytest
from fastapi.testclient import TestClient

from seatbook.accounts.tokens import create_access_token
from seatbook.api.app import create_app
from seatbook.api.rate_limit import limiter
from seatbook.settings import RateLimitSettings, Settings


@pytest.fixture
def api_settings(auth_settings, booking_settings) -> Settings:
    return Settings(
        auth=auth_settings,
        booking=booking_settings,
        rate_limit=RateLimitSettings(enabled=False),
    )


@pytest.fixture
def test_client(session_factory, api_settings):
    """Client over the real app and a fresh database."""
    app = create_app(session_factory, api_settings)
    with TestClient(app) as client:
        yield client
    limiter.reset()
    limiter.enabled = False


@pytest.fixture
def headers_for(auth_settings):
    """Bearer headers for a seeded principal."""

    def _headers(principal):
        token = create_access_token(principal.user_id, auth_settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers
