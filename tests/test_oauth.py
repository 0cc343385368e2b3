"""
Tests for provider sign-in through /api/auth.
"""

import asyncio
from functools import partial
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy.future import select

from core.config import OAUTH_STATE_COOKIE_NAME, SESSION_COOKIE_NAME
from models.user_model import Account, User
from services import oauth_service
from services.oauth_service import OAuthError, OAuthProfile, OAuthService, PROVIDERS


@pytest.fixture
def github(monkeypatch):
    monkeypatch.setattr(PROVIDERS["github"], "client_id", "gh-client")
    monkeypatch.setattr(PROVIDERS["github"], "client_secret", "gh-secret")
    profile = OAuthProfile(
        provider="github", account_id="1001", email="octo@example.com", name="Octo", access_token="gho_abc",
    )

    async def fake_fetch_profile(self, provider, code):
        assert code == "auth-code"
        return profile

    monkeypatch.setattr(OAuthService, "fetch_profile", fake_fetch_profile)
    return profile


def start_signin(client):
    response = client.get("/api/auth/signin/github", follow_redirects=False)
    assert response.status_code == 302
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


def callback(client, state, code="auth-code"):
    return client.get(
        "/api/auth/callback/github", params={"code": code, "state": state}, follow_redirects=False
    )


def test_signin_redirects_to_provider(client, github):
    response = client.get("/api/auth/signin/github", follow_redirects=False)
    location = urlparse(response.headers["location"])
    params = parse_qs(location.query)

    assert location.netloc == "github.com"
    assert params["client_id"] == ["gh-client"]
    assert params["redirect_uri"][0].endswith("/api/auth/callback/github")
    assert response.cookies[OAUTH_STATE_COOKIE_NAME] == params["state"][0]


def test_unconfigured_provider(client):
    response = client.get("/api/auth/signin/gitlab", follow_redirects=False)
    assert response.headers["location"] == "/auth/error?error=OAuthSignin"


def test_callback_creates_verified_user(client, github, run_db):
    state = start_signin(client)
    response = callback(client, state)

    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"
    assert SESSION_COOKIE_NAME in response.cookies

    session = client.get("/api/auth/session").json()["user"]
    assert session["email"] == "octo@example.com"
    assert session["is_oauth"] is True

    async def load(session):
        user = await session.scalar(select(User).where(User.email == "octo@example.com"))
        account = await session.scalar(select(Account).where(Account.user_id == user.id))
        return user, account

    user, account = run_db(load)
    assert user.email_verified is not None
    assert user.hashed_password is None
    assert (account.provider, account.provider_account_id) == ("github", "1001")


def test_second_callback_reuses_account(client, github, run_db):
    callback(client, start_signin(client))
    client.post("/api/auth/signout")
    response = callback(client, start_signin(client))
    assert response.headers["location"] == "/dashboard"

    async def count(session):
        return len((await session.scalars(select(User))).all())

    assert run_db(count) == 1


def test_callback_with_existing_email_is_not_linked(client, github, create_user):
    create_user(email="octo@example.com")
    response = callback(client, start_signin(client))

    assert response.headers["location"] == "/auth/error?error=OAuthAccountNotLinked"
    assert SESSION_COOKIE_NAME not in response.cookies


def test_callback_rejects_state_mismatch(client, github):
    start_signin(client)
    response = callback(client, "forged-state")
    assert response.headers["location"] == "/auth/error?error=OAuthCallbackError"


def test_oauth_user_cannot_use_credentials(client, github, login):
    callback(client, start_signin(client))
    client.post("/api/auth/signout")
    assert login(email="octo@example.com").json() == {"error": "User not found!"}


def mock_github(monkeypatch, handler):
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(oauth_service.httpx, "AsyncClient", partial(httpx.AsyncClient, transport=transport))


def test_fetch_profile_falls_back_to_primary_email(monkeypatch):
    def handler(request):
        if request.url.path == "/login/oauth/access_token":
            return httpx.Response(200, json={"access_token": "gho_abc"})
        if request.url.path == "/user":
            return httpx.Response(200, json={"id": 7, "login": "octo", "email": None})
        if request.url.path == "/user/emails":
            return httpx.Response(200, json=[
                {"email": "old@example.com", "primary": False},
                {"email": "octo@example.com", "primary": True},
            ])
        return httpx.Response(404)

    mock_github(monkeypatch, handler)
    profile = asyncio.run(OAuthService(None).fetch_profile(PROVIDERS["github"], "auth-code"))

    assert profile.account_id == "7"
    assert profile.email == "octo@example.com"
    assert profile.name == "octo"


def test_fetch_profile_provider_error(monkeypatch):
    mock_github(monkeypatch, lambda request: httpx.Response(500))

    with pytest.raises(OAuthError) as exc_info:
        asyncio.run(OAuthService(None).fetch_profile(PROVIDERS["github"], "auth-code"))
    assert exc_info.value.code == "OAuthCallbackError"
