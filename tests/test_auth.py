from datetime import datetime, timedelta, timezone

import jwt

from woms.models.enums import Role


def _register(client, **overrides):
    payload = {
        "email": "new.worker@example.com",
        "password": "secret123",
        "firstName": "Ana",
        "lastName": "Markovic",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_always_creates_worker(client):
    resp = _register(client, role="ADMINISTRATOR")

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "WORKER"
    assert body["data"]["user"]["email"] == "new.worker@example.com"
    assert "passwordHash" not in body["data"]["user"]
    assert body["data"]["tokens"]["accessToken"]


def test_register_duplicate_email(client):
    _register(client)
    resp = _register(client, email="NEW.worker@example.com")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_register_validates_password_length(client):
    resp = _register(client, password="123")
    assert resp.status_code == 400
    assert "password" in resp.json()["error"]


def test_login_and_profile(client, make_user):
    make_user(Role.MANAGER, email="boss@example.com", password="manager123")

    resp = client.post("/api/auth/login", json={"email": "boss@example.com", "password": "manager123"})
    assert resp.status_code == 200
    token = resp.json()["data"]["tokens"]["accessToken"]

    profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["role"] == "MANAGER"


def test_login_wrong_password_is_unauthorized(client, make_user):
    make_user(email="w@example.com", password="right-pass")
    resp = client.post("/api/auth/login", json={"email": "w@example.com", "password": "wrong-pass"})
    assert resp.status_code == 401


def test_login_unknown_email_is_unauthorized(client):
    resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"})
    assert resp.status_code == 401


def test_login_inactive_user_is_forbidden(client, make_user):
    make_user(email="gone@example.com", password="secret123", is_active=False)
    resp = client.post("/api/auth/login", json={"email": "gone@example.com", "password": "secret123"})
    assert resp.status_code == 403


def test_refresh_issues_new_pair(client, make_user):
    make_user(email="r@example.com", password="secret123")
    tokens = client.post("/api/auth/login", json={"email": "r@example.com", "password": "secret123"}).json()["data"]["tokens"]

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200
    assert resp.json()["data"]["tokens"]["accessToken"]

    # An access token is not accepted as a refresh token
    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["accessToken"]})
    assert resp.status_code == 401


def test_access_token_payload(container, worker):
    payload = container.tokens.decode(container.tokens.create_access_token(worker))
    assert payload["sub"] == str(worker.id)
    assert payload["email"] == worker.email
    assert payload["role"] == "WORKER"
    assert payload["type"] == "access"


def test_missing_and_invalid_tokens(client):
    assert client.get("/api/auth/profile").status_code == 401
    resp = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Invalid token"}


def test_expired_token(client, settings, worker):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    token = jwt.encode(
        {"sub": str(worker.id), "type": "access", "exp": int(past.timestamp())},
        settings.jwt_secret,
        algorithm="HS256",
    )
    resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Token expired"


def test_deactivated_user_token_stops_working(client, db, auth_headers, worker):
    headers = auth_headers(worker)
    assert client.get("/api/auth/profile", headers=headers).status_code == 200

    worker.is_active = False
    db.commit()
    assert client.get("/api/auth/profile", headers=headers).status_code == 401
