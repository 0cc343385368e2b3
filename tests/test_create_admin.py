from create_admin import create_admin
from models.user_model import UserRole


def test_create_admin_then_sign_in(client, login):
    user = client.portal.call(create_admin, "boss@example.com", "admin-pass-1", "Boss")
    assert user.role == UserRole.ADMIN
    assert user.email_verified is not None

    assert login(email="boss@example.com", password="admin-pass-1").status_code == 200
    assert client.get("/admin").status_code == 200


def test_create_admin_promotes_existing_user(client, create_user, login):
    user_id = create_user(email="jane@example.com")
    user = client.portal.call(create_admin, "jane@example.com", "admin-pass-2", "Jane")

    assert user.id == user_id
    assert user.role == UserRole.ADMIN
    assert login(password="admin-pass-2").status_code == 200
