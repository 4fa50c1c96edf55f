"""
Test configuration: an in-memory SQLite database shared by the API client and
direct service calls, plus a registered profile with a bearer token.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aetherflow.database import Base, get_db
from aetherflow.main import app
from aetherflow.models import Profile
from aetherflow.auth import hash_password


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    client.post("/users/register", json={"username": "ada", "password": "s3cret"})
    response = client.post("/users/login", json={"username": "ada", "password": "s3cret"})
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def profile(db_session):
    """A profile created directly in the database, for service-level tests."""
    profile = Profile(username="grace", hashed_password=hash_password("pw"), timezone="UTC")
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile
