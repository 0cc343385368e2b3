import os
import threading

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MAIL_SUPPRESS_SEND"] = "True"
os.environ["S3_BUCKET_NAME"] = ""

import pytest
from fastapi.testclient import TestClient

from database import AsyncSessionLocal, utcnow
from main import app
from models.user_model import User, UserRole
from utils.auth_utils import Hasher
from utils.email_service import EmailService
from utils.storage import get_storage

PASSWORD = "password123"


class FakeStorage:
    """In-memory stand-in for the S3 bucket."""

    def __init__(self):
        self.objects = {}
        self.call_threads = []

    def url_for(self, key):
        return f"https://storage.test/bucket/{key}"

    def upload_bytes(self, key, data, content_type, metadata=None):
        self.call_threads.append(threading.get_ident())
        self.objects[key] = {"data": data, "content_type": content_type, "metadata": metadata}
        return self.url_for(key)

    def delete(self, key):
        self.call_threads.append(threading.get_ident())
        return self.objects.pop(key, None) is not None


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []

    def recorder(kind):
        async def record(email, token):
            sent.append({"kind": kind, "email": email, "token": token})
        return record

    monkeypatch.setattr(EmailService, "send_verification_email", recorder("verification"))
    monkeypatch.setattr(EmailService, "send_password_reset_email", recorder("reset"))
    monkeypatch.setattr(EmailService, "send_two_factor_token_email", recorder("two_factor"))
    return sent


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    return fake


async def _with_session(fn):
    async with AsyncSessionLocal() as session:
        return await fn(session)


@pytest.fixture
def run_db(client):
    """Run `async fn(session)` on the app's event loop and return its result."""
    def _run(fn):
        return client.portal.call(_with_session, fn)
    return _run


@pytest.fixture
def create_user(run_db):
    def _create(email="jane@example.com", password=PASSWORD, name="Jane",
                role=UserRole.USER, verified=True, two_factor=False):
        async def insert(session):
            user = User(
                email=email,
                name=name,
                hashed_password=Hasher.get_password_hash(password) if password else None,
                role=role,
                email_verified=utcnow() if verified else None,
                is_two_factor_enabled=two_factor,
            )
            session.add(user)
            await session.commit()
            return user.id
        return run_db(insert)
    return _create


@pytest.fixture
def login(client):
    def _login(email="jane@example.com", password=PASSWORD, **extra):
        return client.post("/auth/login", json={"email": email, "password": password, **extra})
    return _login


@pytest.fixture
def signed_in_user(create_user, login):
    user_id = create_user()
    response = login()
    assert response.status_code == 200
    return user_id


@pytest.fixture
def admin(create_user, login):
    user_id = create_user(email="admin@example.com", name="Admin", role=UserRole.ADMIN)
    response = login(email="admin@example.com")
    assert response.status_code == 200
    return user_id
