"""
Pytest fixtures for stockdesk tests.

Every test gets its own in-memory SQLite database. Service tests use the ``db``
session directly; API tests go through ``client``, whose requests open their own
sessions on the same database.
"""

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockdesk.database import Base, get_db, import_models
from stockdesk.main import app
from stockdesk.schemas.user import UserCreate
from stockdesk.services import auth_service

ADMIN_PASSWORD = "admin-secret"
USER_PASSWORD = "user-secret"

_real_gensalt = bcrypt.gensalt


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Cheap bcrypt rounds; hashing cost is irrelevant to behaviour under test."""
    monkeypatch.setattr(bcrypt, "gensalt", lambda *args, **kwargs: _real_gensalt(rounds=4))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def make_user(db, username: str, password: str, role: str = "user"):
    result = auth_service.add_user(
        db,
        UserCreate(
            username=username,
            password=password,
            email=f"{username}@example.com",
            full_name=f"{username} tester",
            role=role,
        ),
    )
    assert result.success, result.error
    return result.data


@pytest.fixture
def admin(db):
    """Admin account 'admin1'."""
    return make_user(db, "admin1", ADMIN_PASSWORD, role="admin")


@pytest.fixture
def staff(db):
    """Regular account 'staff_user'."""
    return make_user(db, "staff_user", USER_PASSWORD)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, username: str, password: str):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


def auth_headers(client, username: str, password: str) -> dict:
    """Log in and return Bearer headers; the session cookie is dropped so headers decide who calls."""
    resp = login(client, username, password)
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def admin_headers(client, admin):
    return auth_headers(client, "admin1", ADMIN_PASSWORD)


@pytest.fixture
def staff_headers(client, staff):
    return auth_headers(client, "staff_user", USER_PASSWORD)
