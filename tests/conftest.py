import datetime as dt
import os

# до импорта exchange: настройки читаются при импорте
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["COOKIE_SECURE"] = "false"

import pytest
from fastapi.testclient import TestClient

from exchange.db import SessionLocal, engine
from exchange.main import app
from exchange.models.base import Base
from exchange.models.user import User
from exchange.services.categories import seed_categories
from exchange.services.passwords import add_to_history
from exchange.utils.security import hash_password

DEFAULT_PASSWORD = "Str0ng!Pass"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def categories(db):
    seed_categories(db)
    from exchange.services.categories import list_categories
    return list_categories(db)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, password=DEFAULT_PASSWORD, **fields):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        hashed = fields.pop("hashed_password", None) or hash_password(password)
        u = User(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            hashed_password=hashed,
            date_of_birth=dt.date(1990, 1, 1),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "User"),
            **fields,
        )
        db.add(u)
        db.flush()
        add_to_history(db, u.id, hashed)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def login(client):
    def _login(user_or_name, password=DEFAULT_PASSWORD, c=None):
        c = c or client
        username = getattr(user_or_name, "username", user_or_name)
        return c.post("/api/auth/login", json={"username": username, "password": password})

    return _login
