import json
import os
import time
import uuid

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "anon-test-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-test-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length"
os.environ["EVENT_SWEEP_ENABLED"] = "false"
os.environ["ALLOW_APP_RESET"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ecotrack.config import settings
from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.db.session import Base, get_db
from ecotrack.main import app
from ecotrack.models.user import User

TEST_OTP = "123456"


def issue_token(user_id, email):
    claims = {
        "sub": user_id,
        "email": email,
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.ALGORITHM)


class FakePlatform:
    """In-memory stand-in for the platform's auth and storage REST endpoints."""

    def __init__(self):
        self.accounts = {}  # email -> {"id", "password"}
        self.objects = {}  # "<bucket>/<path>" -> bytes
        self.deleted_users = []
        self.signed_out = 0
        self.fail_admin_delete = False
        self.public_reachable = True
        self.requests = []

    def add_account(self, email, password="secret123", user_id=None):
        self.accounts[email] = {"id": user_id or str(uuid.uuid4()), "password": password}
        return self.accounts[email]["id"]

    def _session(self, email):
        user = {"id": self.accounts[email]["id"], "email": email}
        return {
            "access_token": issue_token(user["id"], email),
            "refresh_token": "refresh-" + user["id"],
            "expires_in": 3600,
            "user": user,
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        body = {}
        if request.method in ("POST", "PUT") and path.startswith("/auth/"):
            body = json.loads(request.content) if request.content else {}

        if path == "/auth/v1/signup":
            if body["email"] in self.accounts:
                return httpx.Response(400, json={"msg": "User already registered"})
            user_id = self.add_account(body["email"], body["password"])
            return httpx.Response(200, json={"id": user_id, "email": body["email"]})
        if path == "/auth/v1/verify":
            if body.get("token") != TEST_OTP or body.get("email") not in self.accounts:
                return httpx.Response(403, json={"msg": "Token has expired or is invalid"})
            return httpx.Response(200, json=self._session(body["email"]))
        if path == "/auth/v1/token":
            account = self.accounts.get(body.get("email"))
            if not account or account["password"] != body.get("password"):
                return httpx.Response(400, json={"error": "invalid_grant",
                                                 "error_description": "Invalid login credentials"})
            return httpx.Response(200, json=self._session(body["email"]))
        if path == "/auth/v1/resend":
            return httpx.Response(200, json={})
        if path == "/auth/v1/logout":
            self.signed_out += 1
            return httpx.Response(204)
        if path.startswith("/auth/v1/admin/users/"):
            if self.fail_admin_delete:
                return httpx.Response(500, json={"msg": "Database error deleting user"})
            self.deleted_users.append(path.rsplit("/", 1)[-1])
            return httpx.Response(200, json={})
        if path.startswith("/storage/v1/object/public/"):
            key = path[len("/storage/v1/object/public/"):]
            reachable = self.public_reachable and key in self.objects
            return httpx.Response(200 if reachable else 404)
        if path.startswith("/storage/v1/object/") and request.method == "POST":
            key = path[len("/storage/v1/object/"):]
            if key in self.objects and request.headers.get("x-upsert") != "true":
                return httpx.Response(400, json={"error": "Duplicate", "message": "The resource already exists"})
            self.objects[key] = request.content
            return httpx.Response(200, json={"Key": key})
        return httpx.Response(404, json={"message": f"No fake route for {request.method} {path}"})


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False},
                           poolclass=StaticPool)

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_platform():
    return FakePlatform()


@pytest.fixture
def platform(fake_platform):
    client = PlatformClient(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY,
                            service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
                            transport=httpx.MockTransport(fake_platform.handle))
    yield client
    client.close()


@pytest.fixture
def client(session_factory, platform):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_platform] = lambda: platform
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db, fake_platform):
    """Insert a profile row (and matching auth account); returns (user, auth headers)."""
    counter = {"n": 0}

    def _make(username=None, points=0, full_name="Test User"):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        email = f"{username}@example.com"
        user_id = fake_platform.add_account(email)
        user = User(id=user_id, email=email, username=username, full_name=full_name,
                    points=points)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, {"Authorization": f"Bearer {issue_token(user_id, email)}"}

    return _make


@pytest.fixture
def token_for():
    return issue_token
