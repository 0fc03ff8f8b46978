"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator
from typing import Any

# Set test environment before importing app
os.environ["ENVIRONMENT"] = "test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from turfhub.config import settings
from turfhub.database import get_session
from turfhub.main import app
from turfhub.models import Organization, Role, User
from turfhub.models.role import ORGANIZATION_OWNER_ROLE, SUPER_ADMIN_ROLE
from turfhub.services import access
from turfhub.services.auth import create_token, hash_password
from turfhub.services.email import EmailBackend, email_service
from turfhub.services.rate_limit import get_rate_limiter

TEST_PASSWORD = "correct-horse"


class RecordingEmailBackend(EmailBackend):
    """Email backend that keeps sent messages in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        if self.fail:
            return False
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return True

    def last_link(self) -> str:
        """The action link from the most recent message."""
        text = self.sent[-1]["text"]
        return next(line for line in text.splitlines() if line.startswith("http"))


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty rate limit counters."""
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest.fixture(autouse=True)
def mailbox(monkeypatch: pytest.MonkeyPatch) -> RecordingEmailBackend:
    """Capture outgoing email instead of logging or sending it."""
    backend = RecordingEmailBackend()
    monkeypatch.setattr(email_service, "_backend", backend)
    return backend


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        settings.database_url_test,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session shared with the app under test."""
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(
    session: AsyncSession,
    email: str,
    *,
    first_name: str = "Test",
    last_name: str = "User",
    password: str = TEST_PASSWORD,
    is_verified: bool = True,
) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        is_verified=is_verified,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def user(session: AsyncSession) -> User:
    """Create a verified test user with no roles."""
    return await make_user(session, "test@example.com")


@pytest.fixture
async def admin_user(session: AsyncSession) -> User:
    """Create a test user holding the super admin role."""
    user = await make_user(session, "admin@example.com", first_name="Admin")
    role = await access.get_or_create_default_role(session, SUPER_ADMIN_ROLE)
    await access.assign_role(session, user.id, role)
    await session.commit()
    return user


@pytest.fixture
async def super_admin_role(session: AsyncSession) -> Role:
    role = await access.get_or_create_default_role(session, SUPER_ADMIN_ROLE)
    await session.commit()
    return role


@pytest.fixture
async def organization(session: AsyncSession, user: User) -> Organization:
    """Create an organization owned by the test user."""
    organization = Organization(name="Green Field Arena", slug="green-field-arena")
    session.add(organization)
    await session.flush()

    role = await access.get_or_create_default_role(session, ORGANIZATION_OWNER_ROLE)
    await access.assign_role(session, user.id, role, organization.id)
    await session.commit()
    return organization


@pytest.fixture
def user_token(user: User) -> str:
    """Create a session JWT for the test user."""
    return create_token(user)


@pytest.fixture
def admin_token(admin_user: User) -> str:
    """Create a session JWT for the admin user."""
    return create_token(admin_user)


@pytest.fixture
def auth_headers(user_token: str) -> dict[str, str]:
    """Create authorization headers for the test user."""
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    """Create authorization headers for the admin user."""
    return {"Authorization": f"Bearer {admin_token}"}


# Helper to make authenticated requests
class AuthenticatedClient:
    """Wrapper for AsyncClient with authentication."""

    def __init__(self, client: AsyncClient, headers: dict[str, str]):
        self.client = client
        self.headers = headers

    async def get(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.put(url, **kwargs)


@pytest.fixture
def authenticated_client(client: AsyncClient, auth_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated test client."""
    return AuthenticatedClient(client, auth_headers)


@pytest.fixture
def admin_client(client: AsyncClient, admin_headers: dict[str, str]) -> AuthenticatedClient:
    """Create an authenticated admin test client."""
    return AuthenticatedClient(client, admin_headers)
