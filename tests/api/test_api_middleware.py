"""Response headers, correlation IDs and the health endpoint."""

import pytest

from seatbook.api.middleware.security_headers import SECURITY_HEADERS


@pytest.mark.integration
class TestHealth:
    def test_health_needs_no_auth(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.integration
class TestSecurityHeaders:
    def test_present_on_success_and_error(self, test_client):
        ok = test_client.get("/health")
        unauthorized = test_client.get("/auth/me")

        for response in (ok, unauthorized):
            for name, value in SECURITY_HEADERS.items():
                assert response.headers[name] == value


@pytest.mark.integration
class TestCorrelationId:
    def test_generated_when_absent(self, test_client):
        first = test_client.get("/health").headers["X-Correlation-ID"]
        second = test_client.get("/health").headers["X-Correlation-ID"]

        assert len(first) == 32
        assert first != second

    def test_well_formed_id_is_echoed(self, test_client):
        response = test_client.get("/health", headers={"X-Correlation-ID": "req-42.a_b"})

        assert response.headers["X-Correlation-ID"] == "req-42.a_b"

    def test_malformed_id_is_replaced(self, test_client):
        response = test_client.get("/health", headers={"X-Correlation-ID": "bad id<script>"})

        assert response.headers["X-Correlation-ID"] != "bad id<script>"
        assert len(response.headers["X-Correlation-ID"]) == 32
