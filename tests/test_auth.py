from datetime import timedelta

import pytest
from fastapi import HTTPException

from codehut.core import deps, security
from codehut.core.db import utcnow
from codehut.modules.auth.models import User, UserRole
from codehut.store.sample_data import DEMO_PASSWORD


def signup(client, username="newcoder", email="newcoder@example.com", password="Secret123"):
    return client.post("/api/auth/signup", json={"username": username, "email": email, "password": password})


def test_signup_returns_tokens_and_public_profile(client):
    response = signup(client)
    assert response.status_code == 201
    body = response.json()
    assert body["accessToken"] and body["refreshToken"]
    assert body["user"]["username"] == "newcoder"
    assert body["user"]["role"] == "user"
    assert "passwordHash" not in body["user"] and "password_hash" not in body["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "newcoder@example.com"


@pytest.mark.parametrize("username, email, status", [
    ("JohnDoe", "other@example.com", 409),
    ("someone", "john@example.com", 409),
    ("ab", "ab@example.com", 400),
    ("bad name", "bad@example.com", 400),
])
def test_signup_rejections(client, username, email, status):
    assert signup(client, username=username, email=email).status_code == status


@pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
def test_signup_rejects_weak_passwords(client, password):
    response = signup(client, password=password)
    assert response.status_code == 400
    assert response.json()["message"].startswith("Password must")


def test_signup_rejects_malformed_email(client):
    response = signup(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json()["statusCode"] == 400


def test_login_failure_has_uniform_error_body(client):
    response = client.post("/api/auth/login", json={"email": "john@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "message": "Invalid email or password", "statusCode": 401}


def test_me_requires_a_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["message"] == "Access token required"


def test_me_rejects_garbage_and_refresh_tokens(client):
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401

    tokens = client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD}).json()
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refreshToken']}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token type"


def test_expired_access_token_is_rejected(client, settings, store):
    user = store.users["user-3"]
    token = security._encode({"userId": user.id, "type": security.ACCESS_TOKEN}, timedelta(seconds=-60), settings)
    assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_deactivated_account_is_forbidden(client, auth, store):
    headers = auth("user-4")
    store.users["user-4"].is_active = False
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "Account is deactivated"

    login = client.post("/api/auth/login", json={"email": "css@example.com", "password": DEMO_PASSWORD})
    assert login.status_code == 403


def test_refresh_rotates_the_session(client):
    tokens = client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD}).json()

    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    fresh = response.json()
    assert fresh["refreshToken"] != tokens["refreshToken"]

    # The old refresh token belonged to the replaced session
    assert client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401
    assert client.post("/api/auth/refresh", json={"refreshToken": fresh["refreshToken"]}).status_code == 200


def test_refresh_rejections(client):
    assert client.post("/api/auth/refresh", json={}).status_code == 400
    assert client.post("/api/auth/refresh", json={"refreshToken": "junk"}).status_code == 401

    tokens = client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD}).json()
    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
    assert response.status_code == 401


def test_expired_session_cannot_refresh(client, store):
    tokens = client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD}).json()
    store.sessions["user-3"].expires_at = utcnow() - timedelta(minutes=1)
    assert client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_logout_ends_the_session(client):
    tokens = client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD}).json()
    headers = {"Authorization": f"Bearer {tokens['accessToken']}"}

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401


def test_remember_me_extends_the_session(client, store):
    client.post("/api/auth/login", json={"email": "dev@example.com", "password": DEMO_PASSWORD, "rememberMe": True})
    assert store.sessions["user-3"].expires_at - utcnow() > timedelta(days=29)


def test_change_password(client, auth):
    headers = auth("user-5")
    wrong = client.put("/api/auth/change-password", headers=headers,
                       json={"currentPassword": "nope", "newPassword": "Another123"})
    assert wrong.status_code == 401

    response = client.put("/api/auth/change-password", headers=headers,
                          json={"currentPassword": DEMO_PASSWORD, "newPassword": "Another123"})
    assert response.status_code == 200
    login = client.post("/api/auth/login", json={"email": "react@example.com", "password": "Another123"})
    assert login.status_code == 200


def test_sessions_are_admin_only(client, auth):
    assert client.get("/api/auth/sessions", headers=auth("user-3")).status_code == 403

    response = client.get("/api/auth/sessions", headers=auth("user-admin"))
    assert response.status_code == 200
    body = response.json()
    assert body["totalSessions"] >= 2
    assert {"user-3", "user-admin"} <= {row["userId"] for row in body["sessions"]}


def test_demo_login_existing_and_new_users(client):
    existing = client.post("/api/auth/demo/SarahK")
    assert existing.status_code == 200
    assert existing.json()["user"]["id"] == "user-2"

    created = client.post("/api/auth/demo/freshface")
    assert created.status_code == 200
    assert created.json()["user"]["email"] == "freshface@demo.codehut.dev"
    assert created.json()["accessToken"]


def test_duration_parsing():
    assert security.parse_duration("7d") == timedelta(days=7)
    assert security.parse_duration("15m") == timedelta(minutes=15)
    assert security.parse_duration("3600") == timedelta(hours=1)
    with pytest.raises(ValueError):
        security.parse_duration("soon")


def test_password_hashing():
    hashed = security.get_password_hash("Secret123", rounds=4)
    assert hashed != "Secret123"
    assert security.verify_password("Secret123", hashed)
    assert not security.verify_password("secret123", hashed)
    assert not security.verify_password("Secret123", "not-a-bcrypt-hash")


async def test_role_gates_use_exact_membership():
    moderator = User(id="user-m", username="mod", email="mod@example.com", role=UserRole.MODERATOR)
    assert await deps.require_moderator(current_user=moderator) is moderator
    with pytest.raises(HTTPException) as excinfo:
        await deps.require_admin(current_user=moderator)
    assert excinfo.value.status_code == 403
