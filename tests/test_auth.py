"""
Tests for registration, email verification and credential login.
"""

from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.future import select

from core.config import SESSION_COOKIE_NAME
from database import utcnow
from models.token_model import TwoFactorToken, TwoFactorConfirmation, VerificationToken
from models.user_model import User

from conftest import PASSWORD


def register(client, **overrides):
    payload = {
        "name": "Jane",
        "email": "jane@example.com",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        **overrides,
    }
    return client.post("/auth/register", json=payload)


def test_register_sends_verification_email(client, outbox, run_db):
    response = register(client)

    assert response.status_code == 200
    assert response.json() == {"success": "Verification email sent!"}
    assert [mail["kind"] for mail in outbox] == ["verification"]
    assert outbox[0]["email"] == "jane@example.com"

    async def load(session):
        return await session.scalar(select(User).where(User.email == "jane@example.com"))

    user = run_db(load)
    assert user.hashed_password != PASSWORD
    assert user.email_verified is None


def test_register_existing_email(client, create_user):
    create_user()
    response = register(client)

    assert response.status_code == 400
    assert response.json() == {"error": "User already exists!"}


def test_register_invalid_form(client, outbox):
    assert register(client, email="not-an-email").json() == {"error": "Invalid form data!"}
    assert register(client, password="short", confirm_password="short").json() == {"error": "Invalid form data!"}
    assert register(client, confirm_password="different123").json() == {"error": "Invalid form data!"}
    assert outbox == []


def test_login_unverified_user_gets_new_verification_email(client, create_user, login, outbox):
    create_user(verified=False)
    response = login()

    assert response.json() == {"success": "Verification email sent!"}
    assert SESSION_COOKIE_NAME not in response.cookies
    assert outbox[-1]["kind"] == "verification"


def test_new_verification_marks_email_verified(client, create_user, login, outbox, run_db):
    create_user(verified=False)
    login()
    token = outbox[-1]["token"]

    response = client.post("/auth/new-verification", params={"token": token})
    assert response.json() == {"success": "Email verified successfully!"}

    async def load(session):
        user = await session.scalar(select(User).where(User.email == "jane@example.com"))
        remaining = await session.scalar(select(VerificationToken).where(VerificationToken.token == token))
        return user, remaining

    user, remaining = run_db(load)
    assert user.email_verified is not None
    assert remaining is None

    # tokens are single use
    again = client.post("/auth/new-verification", params={"token": token})
    assert again.status_code == 400
    assert again.json() == {"error": "The token is invalid or has expired!"}


def test_new_verification_rejects_expired_token(client, create_user, login, outbox, run_db):
    create_user(verified=False)
    login()
    token = outbox[-1]["token"]

    async def expire(session):
        await session.execute(
            update(VerificationToken).values(expires=utcnow() - timedelta(minutes=1))
        )
        await session.commit()

    run_db(expire)
    response = client.post("/auth/new-verification", params={"token": token})
    assert response.json() == {"error": "The token is invalid or has expired!"}


def test_new_verification_missing_token(client):
    response = client.post("/auth/new-verification")
    assert response.json() == {"error": "Missing token!"}


def test_login_success_sets_session(client, create_user, login):
    create_user()
    response = login()

    assert response.status_code == 200
    assert response.json() == {"success": "Login successful!", "redirect": "/dashboard"}
    assert SESSION_COOKIE_NAME in response.cookies

    session = client.get("/api/auth/session").json()
    assert session["user"]["email"] == "jane@example.com"
    assert session["user"]["role"] == "USER"
    assert session["user"]["is_oauth"] is False


def test_login_failures(client, create_user, login):
    create_user()

    assert login(password="wrong-password").json() == {"error": "Invalid email or password!"}
    assert login(email="nobody@example.com").json() == {"error": "User not found!"}
    assert login(email="bad-email").json() == {"error": "Invalid email or password!"}
    assert login(password="short").json() == {"error": "Invalid email or password!"}


def test_login_oauth_only_user_has_no_password(client, create_user, login):
    create_user(password=None)
    assert login().json() == {"error": "User not found!"}


def test_two_factor_login(client, create_user, login, outbox, run_db):
    user_id = create_user(two_factor=True)

    first = login()
    assert first.json() == {"two_factor": True}
    assert SESSION_COOKIE_NAME not in first.cookies
    code = outbox[-1]["token"]
    assert outbox[-1]["kind"] == "two_factor"
    assert len(code) == 6 and code.isdigit()

    second = login(code=code)
    assert second.json()["success"] == "Login successful!"
    assert SESSION_COOKIE_NAME in second.cookies

    async def leftovers(session):
        token = await session.scalar(select(TwoFactorToken))
        confirmation = await session.scalar(
            select(TwoFactorConfirmation).where(TwoFactorConfirmation.user_id == user_id)
        )
        return token, confirmation

    # both the code and the confirmation are consumed by the sign-in
    assert run_db(leftovers) == (None, None)


def test_two_factor_wrong_code(client, create_user, login):
    create_user(two_factor=True)
    login()

    # generated codes are always in 100000..999999
    response = login(code="000000")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid code!"}


def test_two_factor_expired_code(client, create_user, login, outbox, run_db):
    create_user(two_factor=True)
    login()
    code = outbox[-1]["token"]

    async def expire(session):
        await session.execute(update(TwoFactorToken).values(expires=utcnow() - timedelta(seconds=1)))
        await session.commit()

    run_db(expire)
    assert login(code=code).json() == {"error": "Code expired!"}


def test_signout_clears_session(client, signed_in_user):
    assert client.get("/dashboard", follow_redirects=False).status_code == 200

    response = client.post("/api/auth/signout")
    assert response.status_code == 200

    assert client.get("/api/auth/session").json() == {"user": None}
    redirected = client.get("/dashboard", follow_redirects=False)
    assert redirected.status_code == 307
    assert redirected.headers["location"] == "/auth/login"


def test_bearer_token_is_accepted(client, create_user, login):
    create_user()
    token = login().cookies[SESSION_COOKIE_NAME]
    client.cookies.clear()

    response = client.get("/dashboard", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "jane@example.com"


def test_auth_error_page(client):
    linked = client.get("/auth/error", params={"error": "OAuthAccountNotLinked"})
    assert linked.json() == {"error": "Email already in use with a different provider!"}
    assert client.get("/auth/error").json() == {"error": "Oops! Something went wrong!"}
