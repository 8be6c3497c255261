"""
Tests for the magic link verification page.
"""
from datetime import timedelta

import pytest

from src.auth import magic_link
from src.auth.session import SESSION_COOKIE_NAME
from src.models.records import utcnow


def _request_link(client, **body):
    payload = {"email": "seeker@example.com", **body}
    return client.post("/api/auth/magic-link", json=payload).json()["debugToken"]


def _verify(client, token):
    return client.get("/auth/magic-link/verify", params={"token": token}, follow_redirects=False)


@pytest.fixture
def clock(monkeypatch):
    state = {"now": utcnow()}
    monkeypatch.setattr(magic_link, "utcnow", lambda: state["now"])
    return state


def test_valid_link_sets_session_and_redirects(client):
    token = _request_link(client, redirectTo="/jobs/3")

    response = _verify(client, token)

    assert response.status_code == 302
    assert response.headers["location"] == "/jobs/3"
    assert SESSION_COOKIE_NAME in response.cookies
    session = client.get("/api/auth/session").json()
    assert session["authenticated"] is True
    assert session["session"]["email"] == "seeker@example.com"


def test_default_redirect_is_user_page(client):
    response = _verify(client, _request_link(client))
    assert response.headers["location"] == "/user"


def test_missing_token_page(client):
    response = client.get("/auth/magic-link/verify")

    assert response.status_code == 400
    assert "text/html" in response.headers["content-type"]
    assert "does not contain a token" in response.text


def test_unknown_token_page(client):
    response = _verify(client, "bogus")

    assert response.status_code == 400
    assert 'data-reason="invalid_token"' in response.text
    assert SESSION_COOKIE_NAME not in response.cookies


def test_expired_link_page(client, clock):
    token = _request_link(client)
    clock["now"] += timedelta(minutes=31)

    response = _verify(client, token)

    assert response.status_code == 400
    assert 'data-reason="expired"' in response.text


def test_reused_link_page(client, clock):
    token = _request_link(client)
    assert _verify(client, token).status_code == 302

    clock["now"] += timedelta(milliseconds=300)
    assert _verify(client, token).status_code == 302

    clock["now"] += timedelta(seconds=2)
    response = _verify(client, token)
    assert response.status_code == 400
    assert 'data-reason="already_used"' in response.text


def test_register_then_login_links_share_identity(client, store):
    register_token = _request_link(client, email="test@example.com", purpose="register")
    _verify(client, register_token)
    first_sub = client.get("/api/auth/session").json()["session"]["sub"]

    client.post("/api/auth/logout")
    login_token = _request_link(client, email="test@example.com", purpose="login")
    _verify(client, login_token)
    second_sub = client.get("/api/auth/session").json()["session"]["sub"]

    assert first_sub == second_sub == store.get_user_by_email("test@example.com").id
