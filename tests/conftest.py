"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database shared by the test and the app (StaticPool)
- A fresh application and connection registry per test
- User factories with JWT tokens for authenticated requests
- HTTPX AsyncClient over ASGITransport
"""
import json
import os
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Callable, Generator

# Rate limits off, local storage under a temp dir
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RESEND_API_KEY", "")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from resolvenow.core.config import settings
from resolvenow.core.deps import get_db
from resolvenow.core.security import create_access_token, hash_password
from resolvenow.core.websocket import Connection, ConnectionRegistry
from resolvenow.db.base import Base
from resolvenow.db.enums import Department, Role
from resolvenow.db.models import User
from resolvenow.main import create_app

TEST_PASSWORD = "correct-horse"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; the session is for setup and assertions."""
    Base.metadata.create_all(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def override_get_db() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "case-files"))
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture(scope="function")
def app(db: Session, registry: ConnectionRegistry):
    application = create_app(registry=registry)
    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class AuthedUser:
    """A persisted user plus a valid bearer token."""
    id: uuid.UUID
    email: str
    role: str
    department: str | None
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., AuthedUser]:
    def _make(
        role: Role = Role.INDIVIDUAL,
        department: Department | None = None,
        full_name: str = "Test User",
        is_active: bool = True,
    ) -> AuthedUser:
        user = User(
            email=f"user-{uuid.uuid4().hex[:8]}@test.com",
            full_name=full_name,
            password_hash=hash_password(TEST_PASSWORD),
            role=role.value,
            department=department.value if department else None,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            department=user.department,
            token_version=user.token_version,
        )
        return AuthedUser(
            id=user.id,
            email=user.email,
            role=user.role,
            department=user.department,
            token=token,
        )

    return _make


@pytest.fixture(scope="function")
def owner(make_user) -> AuthedUser:
    return make_user(full_name="Case Owner")


@pytest.fixture(scope="function")
def consumer_admin(make_user) -> AuthedUser:
    return make_user(role=Role.ADMIN, department=Department.CONSUMER_AFFAIRS, full_name="Consumer Admin")


@pytest.fixture(scope="function")
def employment_admin(make_user) -> AuthedUser:
    return make_user(role=Role.ADMIN, department=Department.EMPLOYMENT, full_name="Employment Admin")


# =============================================================================
# Case helpers
# =============================================================================

def case_payload(**overrides) -> dict:
    payload = {
        "title": "Faulty washing machine",
        "case_type": "consumer",
        "description": "The machine stopped working two days after delivery.",
        "amount": 499.99,
        "urgency": "high",
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope="function")
def submit_case(client: AsyncClient):
    async def _submit(principal: AuthedUser, **overrides) -> dict:
        response = await client.post(
            "/api/cases/submit", json=case_payload(**overrides), headers=principal.headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _submit


# =============================================================================
# Fake WebSocket
# =============================================================================

@dataclass
class FakeWebSocket:
    """Records frames; optionally fails every send."""
    fail_sends: bool = False
    sent: list[dict] = field(default_factory=list)
    closed: bool = False
    close_code: int | None = None

    async def accept(self) -> None:
        return None

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("socket is gone")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]


@pytest.fixture
def connect(registry: ConnectionRegistry):
    """Register a fake dashboard socket for a principal."""
    def _connect(
        principal_id: uuid.UUID, is_admin: bool = False, fail_sends: bool = False
    ) -> tuple[Connection, FakeWebSocket]:
        ws = FakeWebSocket(fail_sends=fail_sends)
        connection = Connection(ws)  # type: ignore[arg-type]
        registry.track(connection)
        registry.register(principal_id, is_admin, connection)
        return connection, ws

    return _connect
