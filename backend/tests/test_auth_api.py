"""
Tests for the /api/auth endpoints.
"""
import pytest

from src import config
from src.auth import magic_link
from src.auth.session import SESSION_COOKIE_NAME, verify_session_token
from src.auth.tokens import sign_token


def _login(client, email="poster@example.com", **extra):
    return client.post("/api/auth/credentials", json={"email": email, "password": "secret", **extra})


# ---- credentials ----

def test_credentials_login_sets_session_cookie(client, store):
    response = _login(client, email="  Poster@Example.com ")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "email": "poster@example.com", "redirectTo": "/user"}

    token = response.cookies.get(SESSION_COOKIE_NAME)
    payload = verify_session_token(token).payload
    user = store.get_user_by_email("poster@example.com")
    assert payload["sub"] == user.id
    assert user.last_login_at is not None


def test_credentials_keeps_relative_redirect(client):
    response = _login(client, redirectTo="/admin/jobs")
    assert response.json()["redirectTo"] == "/admin/jobs"


@pytest.mark.parametrize("target", ["https://evil.example", "//evil.example", "admin"])
def test_credentials_rejects_foreign_redirect(client, target):
    response = _login(client, redirectTo=target)
    assert response.json()["redirectTo"] == "/user"


@pytest.mark.parametrize("email", ["", "not-an-email", "a@b", "with space@example.com"])
def test_credentials_invalid_email(client, email):
    response = _login(client, email=email)
    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_credentials_missing_password(client):
    response = client.post("/api/auth/credentials", json={"email": "poster@example.com"})
    assert response.status_code == 400
    assert response.json()["message"] == "Password is required."


def test_credentials_storage_failure_is_500(client, store, monkeypatch):
    def broken(email):
        raise OSError("disk full")

    monkeypatch.setattr(store, "upsert_user_by_email", broken)

    response = _login(client)

    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert SESSION_COOKIE_NAME not in response.cookies


def test_credentials_wrong_field_types_are_400(client):
    response = client.post("/api/auth/credentials", json={"email": 42, "password": ["x"]})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "message": "Invalid email address."}


@pytest.mark.parametrize("path", ["/api/auth/credentials", "/api/auth/magic-link", "/api/auth/register-email"])
def test_missing_body_is_400(client, path):
    response = client.post(path)
    assert response.status_code == 400
    assert response.json()["ok"] is False


@pytest.mark.parametrize("path", ["/api/auth/credentials", "/api/auth/magic-link", "/api/auth/register-email"])
def test_non_json_body_is_400(client, path):
    response = client.post(path, content=b"email=seeker@example.com", headers={"content-type": "text/plain"})
    assert response.status_code == 400


@pytest.mark.parametrize("body", [{"email": 12345}, ["seeker@example.com"], "seeker@example.com"])
def test_magic_link_unusable_body_is_invalid_email(client, body):
    response = client.post("/api/auth/magic-link", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_EMAIL"


def test_non_string_redirect_falls_back(client):
    response = _login(client, redirectTo={"path": "/admin"})
    assert response.json()["redirectTo"] == "/user"


# ---- session / logout ----

def test_session_without_cookie_is_401(client):
    response = client.get("/api/auth/session")
    assert response.status_code == 401
    assert response.json() == {"authenticated": False}


def test_session_after_login(client):
    _login(client)

    response = client.get("/api/auth/session")

    assert response.status_code == 200
    data = response.json()
    assert data["authenticated"] is True
    assert data["session"]["email"] == "poster@example.com"
    assert {"sub", "iat", "exp"} <= set(data["session"])


def test_session_with_expired_or_forged_cookie_is_401(client):
    client.cookies.set(SESSION_COOKIE_NAME, sign_token({"sub": "x", "email": "x@y.z"}, config.AUTH_SECRET, -1))
    assert client.get("/api/auth/session").status_code == 401

    client.cookies.set(SESSION_COOKIE_NAME, sign_token({"sub": "x", "email": "x@y.z"}, "other", 60))
    assert client.get("/api/auth/session").status_code == 401

    client.cookies.set(SESSION_COOKIE_NAME, "garbage")
    assert client.get("/api/auth/session").status_code == 401


def test_logout_clears_cookie(client):
    _login(client)

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "Max-Age=0" in response.headers["set-cookie"]
    assert client.get("/api/auth/session").status_code == 401


def test_logout_without_session(client):
    assert client.post("/api/auth/logout").json() == {"ok": True}


# ---- magic link ----

def test_magic_link_request(client, store):
    response = client.post(
        "/api/auth/magic-link",
        json={"email": "Seeker@Example.com", "redirectTo": "/jobs/7"},
        headers={"origin": "http://localhost:3000", "x-forwarded-for": "203.0.113.9, 10.0.0.1", "user-agent": "pytest"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["email"] == "seeker@example.com"
    assert data["delivery"] == "logged"
    assert data["verificationUrl"].startswith("http://localhost:3000/auth/magic-link/verify?token=")
    assert data["debugToken"]
    assert "expiresAt" in data

    link = store.find_magic_link(magic_link.hash_token(data["debugToken"]))
    assert link.redirect_to == "/jobs/7"
    assert link.purpose == "login"
    assert link.metadata.request_ip == "203.0.113.9"
    assert link.metadata.user_agent == "pytest"


def test_magic_link_origin_defaults_to_request_url(client):
    data = client.post("/api/auth/magic-link", json={"email": "seeker@example.com"}).json()
    assert data["verificationUrl"].startswith("http://testserver/auth/magic-link/verify?token=")


def test_magic_link_purpose_register(client, store):
    data = client.post("/api/auth/magic-link", json={"email": "seeker@example.com", "purpose": "register"}).json()
    assert store.find_magic_link(magic_link.hash_token(data["debugToken"])).purpose == "register"


def test_magic_link_unknown_purpose_means_login(client, store):
    data = client.post("/api/auth/magic-link", json={"email": "seeker@example.com", "purpose": "admin"}).json()
    assert store.find_magic_link(magic_link.hash_token(data["debugToken"])).purpose == "login"


def test_magic_link_invalid_email(client):
    response = client.post("/api/auth/magic-link", json={"email": "nope"})

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_EMAIL"
    assert response.json()["ok"] is False


def test_magic_link_hides_debug_fields_in_production(client, monkeypatch):
    monkeypatch.setattr(config, "IS_PRODUCTION", True)
    monkeypatch.setattr(config, "IS_DEVELOPMENT", False)

    data = client.post("/api/auth/magic-link", json={"email": "seeker@example.com"}).json()

    assert data["ok"] is True
    assert "verificationUrl" not in data
    assert "debugToken" not in data


def test_magic_link_test_env_has_url_but_no_token(client, monkeypatch):
    monkeypatch.setattr(config, "IS_DEVELOPMENT", False)

    data = client.post("/api/auth/magic-link", json={"email": "seeker@example.com"}).json()

    assert "verificationUrl" in data
    assert "debugToken" not in data


def test_magic_link_storage_failure_is_500(client, store, monkeypatch):
    def broken(now=None):
        raise OSError("read-only file system")

    monkeypatch.setattr(store, "purge_expired_magic_links", broken)

    response = client.post("/api/auth/magic-link", json={"email": "seeker@example.com"})

    assert response.status_code == 500
    assert response.json()["error"] == "SERVER_ERROR"


# ---- register-email ----

def test_register_email(client, store):
    response = client.post("/api/auth/register-email", json={"email": " New@Example.com "})

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["id"] == store.get_user_by_email("new@example.com").id


def test_register_email_twice_is_same_user(client):
    first = client.post("/api/auth/register-email", json={"email": "new@example.com"}).json()
    second = client.post("/api/auth/register-email", json={"email": "NEW@example.com"}).json()
    assert first["user"]["id"] == second["user"]["id"]


def test_register_email_invalid(client):
    response = client.post("/api/auth/register-email", json={})
    assert response.status_code == 400


# ---- SQL store wiring ----

def test_sql_backend_login_and_register(sql_client, db):
    from src.models.auth_models import User

    assert sql_client.post("/api/auth/register-email", json={"email": "sql@example.com"}).status_code == 200
    response = sql_client.post("/api/auth/credentials", json={"email": "SQL@example.com", "password": "x"})

    assert response.status_code == 200
    assert db.query(User).count() == 1
    assert sql_client.get("/api/auth/session").json()["session"]["email"] == "sql@example.com"
