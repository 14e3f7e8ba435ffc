"""Tests for registration, login and bearer-token guards."""

from conftest import auth_headers

from marine_service.security_utils import create_jwt_token


class TestRegister:
    """Tests for POST /api/auth/register."""

    def test_register_creates_customer_and_returns_token(self, client):
        """New accounts are customers and receive a usable token."""
        response = client.post(
            "/api/auth/register",
            json={"name": "Sunil", "email": "Sunil@Mail.com", "password": "s3cretpass"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "customer"
        assert body["data"]["user"]["email"] == "sunil@mail.com"

        me = client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {body['data']['token']}"}
        )
        assert me.status_code == 200
        assert me.json()["data"]["email"] == "sunil@mail.com"

    def test_register_duplicate_email_conflicts(self, client, customer):
        """An email can only be registered once."""
        response = client.post(
            "/api/auth/register",
            json={"name": "Again", "email": customer.email, "password": "s3cretpass"},
        )

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_register_short_password_rejected(self, client):
        """Validation errors are reported as 400."""
        response = client.post(
            "/api/auth/register",
            json={"name": "Short", "email": "short@mail.com", "password": "abc"},
        )

        assert response.status_code == 400
        assert "Password must be at least 8 characters" in response.json()["message"]


class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_with_valid_credentials(self, client, customer):
        """Correct password returns the user and a token."""
        response = client.post(
            "/api/auth/login", json={"email": customer.email, "password": "password123"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["id"] == customer.id
        assert response.json()["data"]["token"]

    def test_login_with_wrong_password(self, client, customer):
        """Wrong password is a 401."""
        response = client.post(
            "/api/auth/login", json={"email": customer.email, "password": "wrong-password"}
        )

        assert response.status_code == 401

    def test_login_inactive_account(self, client, db, customer):
        """Deactivated accounts cannot sign in."""
        customer.is_active = False
        db.commit()

        response = client.post(
            "/api/auth/login", json={"email": customer.email, "password": "password123"}
        )

        assert response.status_code == 401


class TestGuards:
    """Tests for token and role checks on protected routes."""

    def test_missing_token_is_401(self, client):
        """Protected routes need a bearer token."""
        response = client.get("/api/auth/me")

        assert response.status_code == 401

    def test_malformed_token_is_401(self, client):
        """Tokens that are not JWTs are rejected."""
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_token_for_unknown_user_is_401(self, client):
        """A valid signature for a deleted user is rejected."""
        token = create_jwt_token({"sub": "9999", "role": "admin"})

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_customer_cannot_reach_staff_route(self, client, customer):
        """Role guard answers 403 with the role in the message."""
        response = client.get("/api/appointments/stats", headers=auth_headers(customer))

        assert response.status_code == 403
        assert "customer" in response.json()["message"]
