import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import sensorhub.db.models  # noqa: F401, E402
from sensorhub.auth.models import ROLE_USER, User  # noqa: E402
from sensorhub.auth.security import hash_password  # noqa: E402
from sensorhub.db.base import Base  # noqa: E402
from sensorhub.db.session import SessionLocal, engine  # noqa: E402
from sensorhub.main import app  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    # lifespan is not entered, so the reaper does not run during request tests
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(
        email: str = "user@acme.io",
        password: str = "secret1",
        name: str = "Test User",
        role: str = ROLE_USER,
        is_active: bool = True,
    ) -> User:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
            registered_at=datetime.utcnow(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def login(client: TestClient, email: str, password: str = "secret1") -> dict:
    response = client.post("/api/auth/login", json={"correo": email, "contraseña": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
