import pytest

from ngotes.api import auth as auth_api
from ngotes.utils.jwt_auth import create_confirmation_token, decode_token

EMAIL = "user@example.com"
PASSWORD = "StrongPw0rd"


@pytest.fixture()
def sent(monkeypatch):
    tokens = []
    monkeypatch.setattr(auth_api, "confirmation_sender", lambda email, token: tokens.append((email, token)))
    return tokens


def _signup_and_confirm(client, sent):
    r = client.post("/auth/signup", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 201
    _, token = sent[-1]
    r = client.post("/auth/confirm", json={"token": token})
    assert r.status_code == 200
    return r.json()


def test_signup_issues_confirmation_token(client, sent):
    r = client.post("/auth/signup", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 201
    assert r.json()["email"] == EMAIL
    assert len(sent) == 1
    email, token = sent[0]
    assert email == EMAIL
    assert decode_token(token, purpose="confirm")["sub"] == EMAIL


def test_duplicate_signup_conflicts(client, sent):
    client.post("/auth/signup", json={"email": EMAIL, "password": PASSWORD})
    r = client.post("/auth/signup", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 409


def test_signup_rejects_short_password(client, sent):
    r = client.post("/auth/signup", json={"email": EMAIL, "password": "12345"})
    assert r.status_code == 422
    assert sent == []


def test_login_requires_confirmation(client, sent):
    client.post("/auth/signup", json={"email": EMAIL, "password": PASSWORD})
    r = client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 401
    assert r.json()["detail"] == "Email not confirmed"


def test_confirm_then_login(client, sent):
    confirmed = _signup_and_confirm(client, sent)
    assert confirmed["token_type"] == "bearer"

    r = client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert r.status_code == 200
    data = r.json()
    assert data["user"] == confirmed["user"]
    assert decode_token(data["access_token"])["sub"] == data["user"]["user_id"]


def test_login_wrong_password(client, sent):
    _signup_and_confirm(client, sent)
    r = client.post("/auth/login", json={"email": EMAIL, "password": "wrongwrong"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


def test_confirmation_token_cannot_be_used_as_access_token(client, sent):
    _signup_and_confirm(client, sent)
    token = create_confirmation_token(EMAIL)
    r = client.get("/notes", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_access_token_cannot_confirm(client, sent):
    data = _signup_and_confirm(client, sent)
    r = client.post("/auth/confirm", json={"token": data["access_token"]})
    assert r.status_code == 401


def test_current_user(client, sent):
    data = _signup_and_confirm(client, sent)
    r = client.get("/auth/user", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert r.status_code == 200
    assert r.json() == {"user_id": data["user"]["user_id"], "email": EMAIL}


def test_token_identity_scopes_notes(client, sent):
    data = _signup_and_confirm(client, sent)
    headers = {"Authorization": f"Bearer {data['access_token']}"}
    r = client.post("/notes", headers=headers, json={"title": "mine"})
    assert r.status_code == 201
    assert r.json()["user_id"] == data["user"]["user_id"]


def test_expired_token_is_rejected(client, monkeypatch):
    from ngotes.utils.jwt_auth import create_access_token

    monkeypatch.setenv("JWT_EXP_MINUTES", "-1")
    token = create_access_token("userA")
    r = client.get("/notes", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired token"


def test_current_user_without_token_uses_detail_body(client):
    r = client.get("/auth/user")
    assert r.status_code == 401
    assert r.json() == {"detail": "No authorization token provided"}
