"""Test registration, login, and token handling."""

import jwt
import pytest
from fastapi.testclient import TestClient

from app.auth import JWT_ALGORITHM, JWT_SECRET_KEY, create_access_token
from app.models import User

from conftest import TEST_PASSWORD


def _register(client: TestClient, **overrides):
    payload = {
        "first_name": "Carol",
        "last_name": "Writer",
        "username": "carol",
        "email": "Carol@Example.com",
        "password": "hunter22",
    }
    payload.update(overrides)
    return client.post("/auth/register", json=payload)


def test_create_access_token_carries_user_id(test_user: User):
    token = create_access_token(test_user.id)
    payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert payload["user_id"] == test_user.id
    assert payload["type"] == "access"


def test_register_returns_token_and_user(client: TestClient):
    response = _register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    assert body["data"]["token"]
    user = body["data"]["user"]
    assert user["username"] == "carol"
    assert user["email"] == "carol@example.com"
    assert user["role"] == "user"
    assert user["avatar"] == "default-avatar.jpg"
    assert "password_hash" not in user


def test_register_duplicate_email(client: TestClient, test_user: User):
    response = _register(client, email="ALICE@example.com")
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Email already registered"}


def test_register_duplicate_username(client: TestClient, test_user: User):
    response = _register(client, username="alice")
    assert response.status_code == 400
    assert response.json()["message"] == "Username already taken"


def test_register_validation_error_shape(client: TestClient):
    response = _register(client, password="123", email="not-an-email")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation Error"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password"} <= fields


def test_login_success(client: TestClient, test_user: User):
    response = client.post(
        "/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == test_user.id
    payload = jwt.decode(data["token"], JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert payload["user_id"] == test_user.id


@pytest.mark.parametrize(
    "email,password",
    [("alice@example.com", "wrong-password"), ("nobody@example.com", TEST_PASSWORD)],
)
def test_login_invalid_credentials(client: TestClient, test_user: User, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_me(client: TestClient, test_user: User, headers_for):
    response = client.get("/auth/me", headers=headers_for(test_user))
    assert response.status_code == 200
    assert response.json()["data"]["username"] == "alice"


def test_me_without_token(client: TestClient):
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token"


def test_me_with_garbage_token(client: TestClient):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, token failed"


def test_me_with_expired_token(client: TestClient, test_user: User):
    token = create_access_token(test_user.id, expires_in_seconds=-10)
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Token expired"


def test_me_for_deleted_user(client: TestClient):
    token = create_access_token(999_999)
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "User not found"


def test_change_password(client: TestClient, test_user: User, headers_for):
    response = client.put(
        "/auth/password",
        headers=headers_for(test_user),
        json={"current_password": TEST_PASSWORD, "new_password": "brand-new-pass"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Password updated successfully"
    assert body["data"]["user"]["id"] == test_user.id
    payload = jwt.decode(body["data"]["token"], JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    assert payload["user_id"] == test_user.id

    login = client.post(
        "/auth/login", json={"email": "alice@example.com", "password": "brand-new-pass"}
    )
    assert login.status_code == 200


def test_change_password_wrong_current(client: TestClient, test_user: User, headers_for):
    response = client.put(
        "/auth/password",
        headers=headers_for(test_user),
        json={"current_password": "nope-nope", "new_password": "brand-new-pass"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Current password is incorrect"
