from datetime import timedelta

from fastapi import status

from crm_api.crud import UserRepository
from crm_api.security import create_access_token


def create_user(db_session, email="user@example.com", password="secret123"):
    return UserRepository(db_session).create(
        {"name": "User", "email": email, "password": password}
    )


def login(client, email, password):
    return client.post("/login", json={"email": email, "password": password})


def test_login_returns_token_usable_on_protected_routes(client, db_session):
    user = create_user(db_session)
    response = login(client, "user@example.com", "secret123")
    assert response.status_code == status.HTTP_200_OK
    token = response.json()["token"]

    me_resp = client.get(
        f"/users/{user.id}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert me_resp.status_code == status.HTTP_200_OK
    assert me_resp.json()["email"] == "user@example.com"


def test_login_with_wrong_password(client, db_session):
    create_user(db_session)
    response = login(client, "user@example.com", "wrong-password")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid credentials"}


def test_login_with_unknown_email_looks_like_wrong_password(client):
    response = login(client, "ghost@example.com", "secret123")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid credentials"}


def test_login_requires_both_fields(client):
    response = client.post("/login", json={})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["details"] == ["Email is required", "Password is required"]


def test_missing_token_is_rejected(client):
    response = client.get("/customers")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Authentication token missing"}
    assert response.headers["www-authenticate"] == "Bearer"


def test_non_bearer_scheme_counts_as_missing(client):
    response = client.get("/customers", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Authentication token missing"}


def test_invalid_token_is_rejected(client):
    response = client.get("/customers", headers={"Authorization": "Bearer token_invalido"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Authentication token invalid"}


def test_expired_token_is_rejected(client, db_session):
    user = create_user(db_session)
    token = create_access_token(user.id, expires_delta=timedelta(seconds=-1))
    response = client.get("/customers", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Authentication token invalid"}


def test_user_creation_and_login_are_public(client):
    created = client.post(
        "/users",
        json={
            "name": "A",
            "email": "a@x.com",
            "password": "12345678",
            "passwordConfirm": "12345678",
        },
    )
    assert created.status_code == status.HTTP_201_CREATED
    assert login(client, "a@x.com", "12345678").status_code == status.HTTP_200_OK


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["x-request-id"] == "abc-123"
