import os
import tempfile

# Settings are read at import time, so the environment goes first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_SECRET"] = "let-me-in"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GEMINI_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="complaint-desk-logs-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import complaints
import priority
from auth import Identity, create_access_token, hash_password
from database import Base, get_db
from main import app
from models import User

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class FakeGemini:
    """Stands in for the Gemini call; set ``reply`` or ``error``."""

    def __init__(self):
        self.reply = "medium"
        self.error = None
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(priority, "_generate_text", fake)
    return fake


@pytest.fixture()
def uploads(monkeypatch):
    calls = []

    def fake_upload(data, content_type, filename=None):
        calls.append((data, content_type, filename))
        return f"https://storage.example.com/complaints/{len(calls)}.png"

    monkeypatch.setattr(complaints, "upload_complaint_image", fake_upload)
    return calls


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make(role="user", email=None, username=None, password="secret-pass"):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=username or f"{role}{n}",
            email=email or f"{role.lower()}{n}@example.com",
            password=hash_password(password),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def identity_of(user):
    return Identity(user.id, user.role)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
