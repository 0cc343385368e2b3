"""
Tests for the password reset flow.
"""

from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.future import select

from database import utcnow
from models.token_model import PasswordResetToken


def request_reset(client, email="jane@example.com"):
    return client.post("/auth/reset", json={"email": email})


def test_reset_unknown_user(client, outbox):
    response = request_reset(client, "nobody@example.com")
    assert response.status_code == 400
    assert response.json() == {"error": "User not found!"}
    assert outbox == []


def test_reset_invalid_email(client):
    assert request_reset(client, "nope").json() == {"error": "Invalid form data!"}


def test_reset_and_set_new_password(client, create_user, login, outbox, run_db):
    create_user()
    assert request_reset(client).json() == {"success": "Reset email sent!"}
    token = outbox[-1]["token"]
    assert outbox[-1]["kind"] == "reset"

    response = client.post("/auth/new-password", params={"token": token}, json={"password": "new-password-1"})
    assert response.json() == {"success": "Password reset successfully!"}

    assert login().json() == {"error": "Invalid email or password!"}
    assert login(password="new-password-1").json()["success"] == "Login successful!"

    async def remaining(session):
        return await session.scalar(select(PasswordResetToken))

    assert run_db(remaining) is None


def test_second_reset_request_replaces_token(client, create_user, outbox, run_db):
    create_user()
    request_reset(client)
    request_reset(client)
    first, second = outbox[0]["token"], outbox[1]["token"]
    assert first != second

    async def tokens(session):
        return (await session.scalars(select(PasswordResetToken.token))).all()

    assert run_db(tokens) == [second]

    stale = client.post("/auth/new-password", params={"token": first}, json={"password": "new-password-1"})
    assert stale.json() == {"error": "Invalid token!"}


def test_new_password_errors(client, create_user, outbox, run_db):
    create_user()
    request_reset(client)
    token = outbox[-1]["token"]

    missing = client.post("/auth/new-password", json={"password": "new-password-1"})
    assert missing.json() == {"error": "Missing token!"}

    short = client.post("/auth/new-password", params={"token": token}, json={"password": "short"})
    assert short.json() == {"error": "Invalid form data!"}

    async def expire(session):
        await session.execute(update(PasswordResetToken).values(expires=utcnow() - timedelta(minutes=5)))
        await session.commit()

    run_db(expire)
    expired = client.post("/auth/new-password", params={"token": token}, json={"password": "new-password-1"})
    assert expired.status_code == 400
    assert expired.json() == {"error": "Token expired!"}
