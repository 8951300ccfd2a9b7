"""
Pytest Configuration and Shared Fixtures for API Tests

This conftest.py provides:
- an isolated temp directory for the SQLite DB, photo storage and metrics logs
  (environment is set at import time, before config/db are imported anywhere)
- app / client: FastAPI app and TestClient
- db_session: Database session for seed/test data
- clean_state: wipes every table and the photo store before each test
- seed_admin: Admin profile for auth tests
- make_user: factory for profiles of any role/status, with auth headers
"""
import os
import shutil
import sys
import tempfile
import uuid
from pathlib import Path

import bcrypt
import pytest

# Add api/ to Python path (for imports like 'from models import ...')
api_dir = Path(__file__).parent.parent
sys.path.insert(0, str(api_dir))

_TMP_ROOT = Path(tempfile.mkdtemp(prefix="fieldledger-tests-"))
os.environ["DB_PATH"] = str(_TMP_ROOT / "test_fieldledger.db")
os.environ["STORAGE_DIR"] = str(_TMP_ROOT / "storage")
os.environ["LOGS_DIR"] = str(_TMP_ROOT / "logs")
os.environ["TIMEZONE"] = "America/Sao_Paulo"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes!!"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin12345"


def _hash(password: str) -> str:
    # Low cost factor keeps fixtures fast; verification is cost-agnostic
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=4)).decode('utf-8')


@pytest.fixture(scope="session")
def app():
    """FastAPI app instance bound to the temp database."""
    from main import app
    return app


@pytest.fixture(scope="session")
def db_engine_and_session(app):
    """
    Database engine and SessionLocal from db module.

    Creates schema once for entire test session.
    Returns tuple: (engine, SessionLocal, Base)
    """
    from db import engine, SessionLocal
    from models import Base

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield engine, SessionLocal, Base

    engine.dispose()
    shutil.rmtree(_TMP_ROOT, ignore_errors=True)


@pytest.fixture(autouse=True)
def clean_state(db_engine_and_session):
    """Start every test from empty tables and an empty photo store."""
    engine, SessionLocal, Base = db_engine_and_session
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    shutil.rmtree(os.environ["STORAGE_DIR"], ignore_errors=True)
    yield


@pytest.fixture
def db_session(db_engine_and_session):
    """
    Database session for each test.

    Provides clean session with automatic rollback after test.
    """
    engine, SessionLocal, Base = db_engine_and_session
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture(scope="session")
def client(app):
    """FastAPI TestClient for HTTP requests."""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def make_user(db_engine_and_session):
    """
    Factory creating a profile with password credentials.

    Usage: make_user(role="user", status="active", hourly_cost=None, full_name=None)
    Returns dict: id, email, password, role, headers (Bearer access token)
    """
    engine, SessionLocal, Base = db_engine_and_session
    from auth import create_access_token
    from models import AuthCredential, Profile
    from utils.time import utcnow

    def _make(role="user", status="active", hourly_cost=None, full_name=None,
              email=None, password="password123"):
        session = SessionLocal()
        try:
            email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
            profile = Profile(
                email=email,
                full_name=full_name or f"{role.title()} {uuid.uuid4().hex[:4]}",
                role=role,
                status=status,
                hourly_cost=hourly_cost,
                email_confirmed_at=utcnow() if status == "active" else None,
            )
            profile.auth_credential = AuthCredential(password_hash=_hash(password))
            session.add(profile)
            session.commit()
            token = create_access_token(profile.id, profile.role, profile.email)
            return {
                "id": profile.id,
                "email": email,
                "password": password,
                "role": role,
                "headers": {"Authorization": f"Bearer {token}"},
            }
        finally:
            session.close()

    return _make


@pytest.fixture
def seed_admin(make_user):
    """
    Seed admin profile for authentication tests.

    Returns: tuple (profile_id, email, plaintext_password)
    """
    admin = make_user(role="admin", email=ADMIN_EMAIL, password=ADMIN_PASSWORD, full_name="Admin")
    return (admin["id"], ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def admin_token(client, seed_admin):
    """
    Get admin JWT token via /api/auth/login.

    Returns: JWT access token string
    """
    profile_id, email, password = seed_admin

    response = client.post("/api/auth/login", json={
        "email": email,
        "password": password
    })

    if response.status_code != 200:
        raise RuntimeError(f"Admin login failed: {response.status_code} {response.text}")

    return response.json()["access_token"]


@pytest.fixture
def admin_headers(admin_token):
    """
    Authorization headers with admin JWT token.

    Returns: dict {"Authorization": "Bearer <token>"}
    """
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def store():
    """The app's photo storage instance (rooted in the temp dir)."""
    from storage import storage
    return storage


@pytest.fixture
def location(client, make_user):
    """A location owned by a fresh active user; returns (owner, location_json)."""
    owner = make_user(role="user")
    response = client.post("/api/locations", headers=owner["headers"], json={
        "client_name": "Acme Corp",
        "street_name": "Main Street",
        "street_number": "100",
        "city": "Springfield",
        "state": "il",
        "zip_code": "62701",
    })
    assert response.status_code == 201, response.text
    return owner, response.json()


@pytest.fixture
def demand(client, location):
    """A demand at the ``location`` fixture; returns (owner, demand_json)."""
    owner, loc = location
    response = client.post(f"/api/locations/{loc['id']}/demands", headers=owner["headers"], json={
        "title": "Replace roof tiles",
        "start_date": "2026-10-01",
    })
    assert response.status_code == 201, response.text
    return owner, response.json()


@pytest.fixture
def photo_files():
    """Builds the multipart ``files`` entry for a small JPEG-looking payload."""
    def _files(name: str = "photo.jpg", payload: bytes = b"\xff\xd8\xff\xe0fake-jpeg\xff\xd9",
               content_type: str = "image/jpeg"):
        return {"photo": (name, payload, content_type)}
    return _files
