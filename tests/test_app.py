"""Tests for the application shell: health, error envelope, headers and rate limits."""

import pytest

from marine_service import rate_limiter
from marine_service.security_headers import build_security_headers


class TestHealth:
    """Tests for the liveness routes."""

    def test_root_and_health(self, client):
        """Both liveness routes answer 200."""
        assert client.get("/").status_code == 200
        assert client.get("/health").json() == {"status": "healthy"}


class TestErrorEnvelope:
    """Tests for the shared error body."""

    def test_unknown_route_uses_envelope(self, client):
        """Framework 404s are reshaped like service errors."""
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not Found"}

    def test_validation_errors_are_400(self, client):
        """Malformed bodies list the offending fields."""
        response = client.post("/api/auth/login", json={"email": "nimal@mail.com"})

        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["errors"][0]["field"] == "body.password"


class TestSecurityHeaders:
    """Tests for the JSON API security headers."""

    def test_headers_on_api_responses(self, client):
        """API responses are locked down and never cached."""
        response = client.get("/api/appointments/available-slots/2030-05-10")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")
        assert response.headers["Cache-Control"] == "no-store"

    def test_health_is_excluded(self, client):
        """Excluded paths are left untouched."""
        response = client.get("/health")

        assert "Content-Security-Policy" not in response.headers

    def test_hsts_only_in_production(self):
        """HSTS is only sent when served over HTTPS."""
        assert "Strict-Transport-Security" not in build_security_headers(production=False)
        assert "Strict-Transport-Security" in build_security_headers(production=True)


class TestRateLimiter:
    """Tests for the login and register limits."""

    @pytest.fixture
    def hits(self, monkeypatch):
        counts = {}

        def fake_hit(client, key, window_seconds):
            counts[key] = counts.get(key, 0) + 1
            return counts[key], window_seconds

        monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: None)
        monkeypatch.setattr(rate_limiter, "register_hit", fake_hit)
        return counts

    def test_login_limited_per_client(self, client, customer, hits):
        """The 21st login attempt in the window is refused with Retry-After."""
        payload = {"email": customer.email, "password": "wrong-password"}
        for _ in range(20):
            assert client.post("/api/auth/login", json=payload).status_code == 401

        response = client.post("/api/auth/login", json=payload)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "300"
        assert list(hits) == ["login:testclient"]

    def test_forwarded_for_picks_first_hop(self, client, customer, hits):
        """Clients behind a proxy are told apart by X-Forwarded-For."""
        client.post(
            "/api/auth/login",
            json={"email": customer.email, "password": "password123"},
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

        assert list(hits) == ["login:203.0.113.7"]
