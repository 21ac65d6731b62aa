"""
Tests for authentication endpoints and role gating.
"""
from datetime import timedelta

from adpanel.auth import create_access_token, create_refresh_token, token_claims, verify_token


class TestAuthEndpoints:
    """Test auth endpoints."""

    def test_register_user(self, client, db):
        """Test user registration."""
        response = client.post(
            "/api/register",
            json={
                "name": "Alice",
                "email": "alice@example.com",
                "password": "pw123",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully"
        assert isinstance(data["user_id"], int)

    def test_register_duplicate_email(self, client, test_user):
        """Test registration with existing email fails."""
        response = client.post(
            "/api/register",
            json={
                "name": "Another User",
                "email": "test@example.com",
                "password": "anotherpassword",
            },
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT"

    def test_register_requires_all_fields(self, client, db):
        response = client.post("/api/register", json={"email": "bob@example.com"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_login_success(self, client, test_user):
        """Test successful login."""
        response = client.post(
            "/api/login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token"] == data["access_token"]
        assert data["token_type"] == "bearer"

        claims = verify_token(data["token"])
        assert claims["sub"] == str(test_user.id)
        assert claims["email"] == "test@example.com"

    def test_login_failures_are_indistinguishable(self, client, test_user):
        """Wrong password and unknown email give the same answer."""
        wrong_password = client.post(
            "/api/login",
            json={"email": "test@example.com", "password": "wrongpassword"},
        )
        unknown_email = client.post(
            "/api/login",
            json={"email": "nobody@example.com", "password": "testpassword123"},
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        first, second = wrong_password.json(), unknown_email.json()
        first.pop("timestamp")
        second.pop("timestamp")
        assert first == second

    def test_login_inactive_user(self, client, test_user, db):
        test_user.is_active = False
        db.commit()
        response = client.post(
            "/api/login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        assert response.status_code == 401

    def test_register_then_login(self, client, db):
        client.post(
            "/api/register",
            json={"name": "Alice", "email": "alice@example.com", "password": "pw123"},
        )
        response = client.post("/api/login", json={"email": "alice@example.com", "password": "pw123"})
        assert response.status_code == 200

        me = client.get("/api/me", headers={"Authorization": f"Bearer {response.json()['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"
        assert me.json()["capabilities"] == {"is_admin": False}

    def test_get_current_user_unauthenticated(self, client, db):
        response = client.get("/api/me")
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_malformed_token(self, client, db):
        response = client.get("/api/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token(self, client, test_user):
        token = create_access_token(token_claims(test_user), expires_delta=timedelta(seconds=-1))
        response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token_is_not_an_access_token(self, client, test_user):
        token = create_refresh_token(token_claims(test_user))
        response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token(self, client, test_user):
        login_response = client.post(
            "/api/login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        refresh_token = login_response.json()["refresh_token"]

        response = client.post("/api/token/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200
        assert "access_token" in response.json()


class TestAdminGate:
    """Role checks use the user's admin flag, not its email."""

    def test_non_admin_is_forbidden(self, client, auth_headers):
        response = client.get("/api/admin/payment-settings", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_non_admin_forbidden_even_for_missing_resource(self, client, auth_headers):
        response = client.patch("/api/admin/packages/9999", headers=auth_headers, json={"name": "x"})
        assert response.status_code == 403

    def test_admin_without_token_is_unauthorized(self, client, db):
        response = client.get("/api/admin/users")
        assert response.status_code == 401

    def test_admin_capabilities(self, client, admin_headers):
        response = client.get("/api/me", headers=admin_headers)
        assert response.json()["capabilities"] == {"is_admin": True}

    def test_shadow_login(self, client, admin_headers, test_user, admin_user):
        response = client.post(f"/api/admin/users/{test_user.id}/impersonate", headers=admin_headers)
        assert response.status_code == 200
        token = response.json()["token"]
        assert verify_token(token)["impersonated_by"] == admin_user.id

        me = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["id"] == test_user.id

    def test_shadow_login_requires_admin(self, client, auth_headers, other_user):
        response = client.post(f"/api/admin/users/{other_user.id}/impersonate", headers=auth_headers)
        assert response.status_code == 403

    def test_list_users(self, client, admin_headers, test_user):
        response = client.get("/api/admin/users", headers=admin_headers)
        emails = [u["email"] for u in response.json()["users"]]
        assert "test@example.com" in emails
