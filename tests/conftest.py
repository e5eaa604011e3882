"""Pytest configuration and fixtures"""
import os
from typing import Callable, Generator

# Settings are read at import time
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from pacportal.database import Base, get_db
from pacportal.main import app
from pacportal.models.profile import ROLE_ADMIN, ROLE_MEMBER, Profile
from pacportal.services.admin_auth import setup_admin_credential
from pacportal.services.credentials import CredentialStore

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_PASSWORD = "Secret123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def store(db: Session) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture
def make_profile(db: Session) -> Callable[..., Profile]:
    """Factory for profiles; matricula and email are derived from a counter"""
    counter = {"n": 0}

    def _make(role: str = ROLE_MEMBER, active: bool = True, **fields) -> Profile:
        counter["n"] += 1
        n = counter["n"]
        profile = Profile(
            matricula=fields.pop("matricula", f"1000000000{n}"),
            email=fields.pop("email", f"agent{n}@pac.test"),
            full_name=fields.pop("full_name", f"Agent {n}"),
            role=role,
            active=active,
            **fields,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def admin_profile(make_profile) -> Profile:
    """Active admin that has never configured an admin password"""
    return make_profile(role=ROLE_ADMIN, full_name="Ana Admin")


@pytest.fixture
def member_profile(make_profile) -> Profile:
    return make_profile(role=ROLE_MEMBER, full_name="Maria Member")


@pytest.fixture
def configured_admin(store: CredentialStore, admin_profile: Profile) -> Profile:
    """Admin with ADMIN_PASSWORD already set up"""
    result = setup_admin_credential(store, admin_profile.id, ADMIN_PASSWORD, ADMIN_PASSWORD)
    assert result.success
    return admin_profile


@pytest.fixture
def login(client: TestClient) -> Callable[[Profile], dict]:
    """Log a profile in through the member login endpoint (cookie kept by the client)"""

    def _login(profile: Profile) -> dict:
        response = client.post("/auth/login", json={"matricula": profile.matricula})
        assert response.status_code == 200, response.text
        return response.json()

    return _login
