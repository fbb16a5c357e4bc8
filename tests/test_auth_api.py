"""
API tests for registration, login and token lifecycle
"""

import inspect
import pytest
import sys
import os

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from datetime import timedelta

from conftest import register, auth_headers
import database


class TestRegistration:
    """Test account registration"""

    def test_register_returns_tokens(self, client):
        """Test a new user gets tokens and the User role"""
        data = register(client)

        assert data["email"] == "alice@example.com"
        assert data["role"] == "User"
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["expires_at"]

    def test_register_creates_default_portfolio(self, client):
        """Test registration creates the default portfolio"""
        headers = auth_headers(register(client)["access_token"])

        response = client.get("/api/portfolios", headers=headers)
        portfolios = response.json()["data"]

        assert len(portfolios) == 1
        assert portfolios[0]["name"] == "Default Portfolio"
        assert portfolios[0]["is_default"] is True

    def test_duplicate_email_rejected(self, client):
        """Test emails are unique regardless of case"""
        register(client)
        response = client.post("/api/auth/register", json={
            "email": "ALICE@example.com",
            "password": "Secret123",
            "confirm_password": "Secret123",
            "first_name": "Alice",
            "last_name": "Again",
        })

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Registration failed. Email may already be in use."

    def test_duplicate_email_race(self, client, monkeypatch):
        """Test a duplicate that slips past the lookup is still a 400"""
        register(client)
        monkeypatch.setattr(database, "get_user_by_email", lambda email: None)

        response = client.post("/api/auth/register", json={
            "email": "alice@example.com",
            "password": "Secret123",
            "confirm_password": "Secret123",
            "first_name": "Alice",
            "last_name": "Again",
        })

        assert response.status_code == 400
        assert response.json()["message"] == "Registration failed. Email may already be in use."

    def test_password_endpoints_run_in_threadpool(self):
        """Test endpoints that hash passwords are not coroutines"""
        from routers import auth as auth_router

        assert not inspect.iscoroutinefunction(auth_router.register)
        assert not inspect.iscoroutinefunction(auth_router.login)
        assert not inspect.iscoroutinefunction(auth_router.change_password)

    def test_password_mismatch(self, client):
        """Test the confirmation must match"""
        response = client.post("/api/auth/register", json={
            "email": "bob@example.com",
            "password": "Secret123",
            "confirm_password": "Secret124",
            "first_name": "Bob",
            "last_name": "Jones",
        })
        assert response.status_code == 400

    def test_weak_password(self, client):
        """Test passwords without an upper-case letter are rejected"""
        response = client.post("/api/auth/register", json={
            "email": "bob@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
            "first_name": "Bob",
            "last_name": "Jones",
        })
        assert response.status_code == 400
        assert "uppercase" in response.json()["message"]

    def test_invalid_email_is_validation_error(self, client):
        """Test request validation errors use the response envelope"""
        response = client.post("/api/auth/register", json={
            "email": "not-an-email",
            "password": "Secret123",
            "confirm_password": "Secret123",
            "first_name": "Bob",
            "last_name": "Jones",
        })

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert any("email" in error for error in body["errors"])


class TestLogin:
    """Test login and bearer authentication"""

    def test_login_success(self, client):
        """Test valid credentials return tokens"""
        register(client)
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"})

        assert response.status_code == 200
        assert response.json()["data"]["first_name"] == "Alice"

    def test_login_wrong_password(self, client):
        """Test wrong password is a 401 with a generic message"""
        register(client)
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong123"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_login_unknown_user(self, client):
        """Test unknown email gets the same answer as a wrong password"""
        response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "Secret123"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_missing_token(self, client):
        """Test protected routes require a bearer token"""
        assert client.get("/api/portfolios").status_code == 401

    def test_garbage_token(self, client):
        """Test an invalid token is rejected"""
        response = client.get("/api/portfolios", headers=auth_headers("not.a.token"))
        assert response.status_code == 401


class TestTokenLifecycle:
    """Test refresh, logout and password changes"""

    def test_refresh_rotates_token(self, client):
        """Test a refresh token can be used once"""
        data = register(client)

        first = client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert first.status_code == 200
        assert first.json()["data"]["refresh_token"] != data["refresh_token"]

        replay = client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert replay.status_code == 401
        assert replay.json()["message"] == "Invalid or expired refresh token"

    def test_expired_refresh_token(self, client):
        """Test a refresh token past its expiry is rejected"""
        data = register(client)
        database.update_user(data["user_id"], {
            "refresh_token_expiry_time": database.utcnow() - timedelta(minutes=1)
        })

        response = client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired refresh token"

    def test_logout_revokes_refresh_token(self, client):
        """Test logout clears the stored refresh token"""
        data = register(client)

        response = client.post("/api/auth/logout", headers=auth_headers(data["access_token"]))
        assert response.status_code == 200

        refresh = client.post("/api/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
        assert refresh.status_code == 401

    def test_change_password(self, client):
        """Test the new password works and the old one does not"""
        data = register(client)
        headers = auth_headers(data["access_token"])

        response = client.post("/api/auth/change-password", headers=headers, json={
            "current_password": "Secret123",
            "new_password": "Better456",
            "confirm_password": "Better456",
        })
        assert response.status_code == 200

        old = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Secret123"})
        new = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Better456"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_change_password_wrong_current(self, client):
        """Test the current password must be correct"""
        headers = auth_headers(register(client)["access_token"])
        response = client.post("/api/auth/change-password", headers=headers, json={
            "current_password": "Wrong123",
            "new_password": "Better456",
            "confirm_password": "Better456",
        })
        assert response.status_code == 400

    def test_password_reset_request_always_succeeds(self, client):
        """Test unknown emails are not revealed"""
        response = client.post("/api/auth/password-reset-request", json={"email": "nobody@example.com"})
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_verify_email(self, client):
        """Test empty tokens are rejected"""
        assert client.get("/api/auth/verify-email").status_code == 400
        assert client.get("/api/auth/verify-email", params={"token": "abc"}).status_code == 200


class TestUsers:
    """Test profile endpoints"""

    def test_profile(self, client, user_headers):
        """Test the caller's profile"""
        response = client.get("/api/users/profile", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "alice@example.com"

    def test_cannot_read_other_user(self, client, user_headers):
        """Test non-admins only see themselves"""
        other = register(client, email="bob@example.com", first_name="Bob")
        response = client.get(f"/api/users/{other['user_id']}", headers=user_headers)
        assert response.status_code == 403

    def test_update_profile(self, client):
        """Test updating names"""
        data = register(client)
        headers = auth_headers(data["access_token"])

        response = client.put(f"/api/users/{data['user_id']}", headers=headers,
                              json={"first_name": "Alicia", "last_name": "Smith"})

        assert response.status_code == 200
        assert response.json()["data"]["first_name"] == "Alicia"

    def test_update_email_collision(self, client):
        """Test an email change cannot take another account's email"""
        register(client, email="bob@example.com", first_name="Bob")
        data = register(client)
        response = client.put(f"/api/users/{data['user_id']}", headers=auth_headers(data["access_token"]),
                              json={"first_name": "Alice", "last_name": "Smith", "email": "bob@example.com"})
        assert response.status_code == 400

    def test_user_list_requires_admin(self, client, user_headers):
        """Test the user list is admin-only"""
        assert client.get("/api/users", headers=user_headers).status_code == 403

    def test_admin_lists_users(self, client, admin_headers):
        """Test the admin sees the paged user list"""
        register(client)
        response = client.get("/api/users", headers=admin_headers, params={"page_size": 2})
        body = response.json()

        assert response.status_code == 200
        assert body["total_count"] == 4
        assert body["page_size"] == 2
        assert body["total_pages"] == 2
        assert body["has_next"] is True
