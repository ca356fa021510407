import pytest
from fastapi.testclient import TestClient

from main import create_app
from portfolio_api.core.config import Settings
from portfolio_api.db.base import Database

ADMIN_USERNAME = "owner"
ADMIN_EMAIL = "owner@example.com"
ADMIN_PASSWORD = "s3cret-pass"


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        DATABASE_URL=f"sqlite:///{tmp_path}/test.db",
        POSTGRES_URL="",
        SECRET_KEY="test-secret",
        ADMIN_AUTH_REQUIRED=True,
        DEMO_MODE=True,
        SWEEP_ON_STARTUP=False,
        SESSION_DURATION_DAYS=7,
        WEB3FORMS_ACCESS_KEY="",
        OWNER_EMAIL="",
        SMTP_HOST="",
        SMTP_USERNAME="",
        SMTP_PASSWORD="",
        EMAIL_FROM="",
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(client):
    """A session on the same database the running app uses."""
    session = client.app.state.db.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def database(tmp_path):
    database = Database(f"sqlite:///{tmp_path}/standalone.db")
    database.create_all()
    yield database
    database.dispose()


def register_admin(client, username=ADMIN_USERNAME, email=ADMIN_EMAIL, password=ADMIN_PASSWORD) -> str:
    """Sign up, approve with the demo-mode OTP, log in. Returns the bearer token."""
    response = client.post("/api/admin/signup", json={"username": username, "email": email, "password": password})
    assert response.status_code == 200, response.text
    otp = response.json()["otp"]

    response = client.post("/api/admin/verify-signup", json={"email": email, "otp": otp})
    assert response.status_code == 200, response.text

    response = client.post("/api/admin/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
def admin_headers(client):
    return {"Authorization": f"Bearer {register_admin(client)}"}
