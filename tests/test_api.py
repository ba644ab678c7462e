"""API endpoint tests for registration and credentials sign-in."""

import pytest

from src.models.user import User
from src.services.auth import EMAIL_TAKEN, EMAIL_TAKEN_PASSWORDLESS, INVALID_FIELDS


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_register_user(client):
    """Test user registration."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "newuser@example.com", "password": "password123", "name": "New User"},
    )
    assert response.status_code == 201
    assert response.json() == {"success": "Account created! You can now sign in."}


def test_register_without_name(client):
    """Test registration with no display name."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "noname@example.com", "password": "password123"},
    )
    assert response.status_code == 201


def test_register_duplicate_email(client, auth_headers):
    """Test registration with duplicate email fails."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": auth_headers.email, "password": "password123", "name": "Duplicate"},
    )
    assert response.status_code == 409
    assert response.json() == {"error": EMAIL_TAKEN}


def test_register_duplicate_email_different_case(client, auth_headers):
    """Test duplicate detection ignores email case."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": auth_headers.email.upper(), "password": "password123"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == EMAIL_TAKEN


def test_register_email_of_passwordless_account(client, db):
    """Test registering over a magic-link/OAuth account suggests those methods."""
    db.add(User(email="oauth@example.com", name="OAuth User"))
    db.commit()

    response = client.post(
        "/api/v1/auth/register",
        json={"email": "OAuth@Example.com", "password": "password123"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == EMAIL_TAKEN_PASSWORDLESS


def test_register_invalid_email(client, db):
    """Test invalid email is rejected."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "not-an-email", "password": "password123"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": INVALID_FIELDS}
    assert db.query(User).count() == 0


def test_register_short_password(client):
    """Test a password below the minimum length is rejected."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "short@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == INVALID_FIELDS


def test_register_missing_fields(client):
    """Test an empty payload is rejected."""
    response = client.post("/api/v1/auth/register", json={})
    assert response.status_code == 400


@pytest.mark.parametrize("payload", [["a@example.com", "password123"], "a@example.com", 42])
def test_register_non_object_body(client, db, payload):
    """Test a JSON body that is not an object gets the action error."""
    response = client.post("/api/v1/auth/register", json=payload)
    assert response.status_code == 400
    assert response.json() == {"error": INVALID_FIELDS}
    assert db.query(User).count() == 0


def test_login(client, auth_headers):
    """Test user login."""
    response = client.post(
        "/api/v1/auth/login", json={"email": auth_headers.email, "password": "testpass123"}
    )
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"
    assert data["redirect_to"] == "/dashboard"
    assert data["user"]["has_password"] is True


def test_login_mixed_case_email(client):
    """Test signing in with a different email case than registered."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "Alice@Example.COM", "password": "password123", "name": "Alice"},
    )
    assert response.status_code == 201

    response = client.post(
        "/api/v1/auth/login", json={"email": "aLiCe@example.com", "password": "password123"}
    )
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "alice@example.com"


def test_login_wrong_password(client, auth_headers):
    """Test login with wrong password."""
    response = client.post(
        "/api/v1/auth/login", json={"email": auth_headers.email, "password": "wrongpass"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password."


def test_login_unknown_email(client):
    """Test login for an email with no account."""
    response = client.post(
        "/api/v1/auth/login", json={"email": "nobody@example.com", "password": "password123"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password."


def test_login_passwordless_account(client, db):
    """Test credentials sign-in never succeeds for an account without a password."""
    db.add(User(email="magic@example.com"))
    db.commit()

    response = client.post(
        "/api/v1/auth/login", json={"email": "magic@example.com", "password": "anything"}
    )
    assert response.status_code == 401


def test_login_honours_from_path(client, auth_headers):
    """Test the post-login destination comes from the from parameter."""
    response = client.post(
        "/api/v1/auth/login?from=/settings/billing",
        json={"email": auth_headers.email, "password": "testpass123"},
    )
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/settings/billing"


def test_login_ignores_offsite_from(client, auth_headers):
    """Test an off-site from parameter falls back to the dashboard."""
    response = client.post(
        "/api/v1/auth/login?from=https://evil.example.com/",
        json={"email": auth_headers.email, "password": "testpass123"},
    )
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/dashboard"


def test_get_current_user(client, auth_headers):
    """Test getting current user info."""
    response = client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["email"] == auth_headers.email
    assert response.json()["id"] == auth_headers.user_id


def test_get_current_user_invalid_token(client):
    """Test a garbage token is rejected."""
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_logout(client, auth_headers):
    """Test logout."""
    response = client.post("/api/v1/auth/logout", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"
