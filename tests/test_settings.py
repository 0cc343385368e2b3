"""
Tests for the settings page.
"""

from sqlalchemy import insert
from sqlalchemy.future import select

from models.user_model import Account, User


def update_settings(client, **values):
    return client.post("/settings", json=values)


def test_get_settings(client, signed_in_user):
    body = client.get("/settings").json()
    assert body["email"] == "jane@example.com"
    assert body["is_verified"] is True
    assert body["role"] == "USER"


def test_update_name_and_two_factor(client, signed_in_user):
    response = update_settings(client, name="Janet", is_two_factor_enabled=True)
    assert response.json() == {"success": "Settings updated successfully"}

    body = client.get("/settings").json()
    assert body["name"] == "Janet"
    assert body["is_two_factor_enabled"] is True


def test_change_password(client, signed_in_user, login):
    wrong = update_settings(client, password="not-my-password", new_password="brand-new-pass")
    assert wrong.json() == {"error": "Invalid password"}

    ok = update_settings(client, password="password123", new_password="brand-new-pass")
    assert ok.json() == {"success": "Password updated successfully"}

    client.post("/api/auth/signout")
    assert login(password="brand-new-pass").json()["success"] == "Login successful!"


def test_password_fields_go_together(client, signed_in_user):
    response = update_settings(client, password="password123")
    assert response.status_code == 400
    assert response.json() == {"error": "New password is required"}


def test_change_email_requires_reverification(client, signed_in_user, outbox, run_db):
    response = update_settings(client, email="new@example.com")
    assert response.json() == {"success": "Verification email sent"}
    assert outbox[-1] == {"kind": "verification", "email": "new@example.com", "token": outbox[-1]["token"]}

    async def load(session):
        return await session.get(User, signed_in_user)

    user = run_db(load)
    assert user.email == "new@example.com"
    assert user.email_verified is None

    verified = client.post("/auth/new-verification", params={"token": outbox[-1]["token"]})
    assert verified.json() == {"success": "Email verified successfully!"}


def test_change_email_to_taken_address(client, signed_in_user, create_user):
    create_user(email="taken@example.com")
    response = update_settings(client, email="taken@example.com")
    assert response.json() == {"error": "Email already in use"}


def test_regular_user_cannot_change_role(client, signed_in_user):
    response = update_settings(client, role="ADMIN")
    assert response.json() == {"error": "Unauthorized"}
    assert client.get("/settings").json()["role"] == "USER"


def test_admin_can_change_own_role(client, admin):
    response = update_settings(client, role="USER")
    assert response.json() == {"success": "Settings updated successfully"}
    assert client.get("/admin").status_code == 403


def test_oauth_user_cannot_change_credentials(client, signed_in_user, run_db):
    async def link(session):
        await session.execute(insert(Account).values(
            user_id=signed_in_user, type="oauth", provider="github", provider_account_id="42",
        ))
        await session.commit()

    run_db(link)
    response = update_settings(client, email="other@example.com", name="Octo")
    assert response.json() == {"success": "Settings updated successfully"}

    async def load(session):
        return await session.scalar(select(User).where(User.id == signed_in_user))

    user = run_db(load)
    assert user.email == "jane@example.com"
    assert user.name == "Octo"
