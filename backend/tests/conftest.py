import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from todo_api.config import Settings
from todo_api.db import get_engine, init_db
from todo_api.main import create_app

TEST_SECRET = "test-secret"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        pbkdf2_iters=1000,
        db_init_attempts=1,
        log_level="WARNING",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(settings):
    engine = get_engine(settings)
    init_db(engine, attempts=1)
    with Session(engine) as s:
        yield s
    engine.dispose()


def register(client, email="alice@example.com", password="s3cret-pw", username="alice"):
    r = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    return r


def auth_headers(client, email="alice@example.com", password="s3cret-pw"):
    register(client, email=email, password=password, username=email.split("@")[0])
    r = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}
