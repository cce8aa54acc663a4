"""
Test fixtures for the GrowthFund API test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - session_factory: Session factory bound to the test engine (interest job)
  - dispatcher: Fake email dispatcher that records every code it "sends"
  - client: Async HTTP test client (unauthenticated)
  - member: A registered MEMBER with a JWT, as a MemberHandle
  - authenticated_client: Test client carrying the member's token
  - admin_client: Separate test client with an ADMIN user's token
  - fund_account / confirm: Helpers that move money through the real OTP flow

Key design decisions:
  - We override get_db, get_session_factory and get_dispatcher so the
    application code runs exactly as in production, against the test
    database and without network calls.
  - Users are created via the signup endpoint, so every test exercises the
    real signup flow.
  - The admin is created by signing up normally and then updating user_type
    directly in the DB, the way an operator provisions admins.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

import uuid
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from growthfund.database import Base, get_db, get_session_factory
from growthfund.exceptions import FundAPIError
from growthfund.main import app
from growthfund.models.one_time_code import CodePurpose
from growthfund.models.user import User, UserType
from growthfund.services.notifications import get_dispatcher


# In-memory SQLite for fast, isolated tests. StaticPool keeps the single
# connection alive so every session sees the same database.
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass
class SentCode:
    email: str
    code: str
    purpose: CodePurpose
    user_name: str | None


@dataclass
class FakeDispatcher:
    """Stands in for EmailDispatcher; records codes instead of emailing them."""
    sent: list[SentCode] = field(default_factory=list)
    succeed: bool = True

    async def send_code(self, email, code, purpose, user_name=None) -> bool:
        self.sent.append(SentCode(email, code, purpose, user_name))
        return self.succeed

    def last_code(self, email: str | None = None) -> str:
        for message in reversed(self.sent):
            if email is None or message.email == email:
                return message.code
        raise AssertionError(f"No code sent to {email}")


@dataclass
class MemberHandle:
    user_id: uuid.UUID
    account_id: uuid.UUID
    email: str
    headers: dict


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest_asyncio.fixture
async def client(session_factory, dispatcher):
    """
    Async HTTP test client with the test database and fake dispatcher injected.

    The get_db override keeps production semantics: commit on success and
    on domain errors, roll back on anything else.
    """
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except FundAPIError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def signup_member(client, email: str, password: str = "SecurePass123!",
                        full_name: str = "Test User") -> MemberHandle:
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert response.status_code == 201, f"Signup failed: {response.text}"
    data = response.json()
    return MemberHandle(
        user_id=uuid.UUID(data["user_id"]),
        account_id=uuid.UUID(data["account_id"]),
        email=data["email"],
        headers={"Authorization": f"Bearer {data['token']}"},
    )


@pytest_asyncio.fixture
async def member(client):
    return await signup_member(client, "testuser@example.com")


@pytest_asyncio.fixture
async def second_member(client):
    return await signup_member(client, "seconduser@example.com", full_name="Second User")


@pytest_asyncio.fixture
async def authenticated_client(client, member):
    """
    Test client with the member's Authorization header set.

    Requests for other users pass their own headers explicitly.
    """
    client.headers["Authorization"] = member.headers["Authorization"]
    return client


@pytest_asyncio.fixture
async def admin_headers(client, session_factory):
    """
    Authorization headers for an ADMIN user.

    Signs up as a member, then promotes the user directly in the database.
    """
    admin = await signup_member(client, "admin@example.com", "AdminPass123!", "Admin User")

    async with session_factory() as session:
        await session.execute(
            update(User)
            .where(User.id == admin.user_id)
            .values(user_type=UserType.ADMIN)
        )
        await session.commit()

    login_response = await client.post(
        "/auth/login",
        json={"email": "admin@example.com", "password": "AdminPass123!"},
    )
    return {"Authorization": f"Bearer {login_response.json()['token']}"}


@pytest_asyncio.fixture
async def admin_client(client, admin_headers):
    """A second HTTP client, sharing the overrides, that acts as the admin."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=admin_headers,
    ) as ac:
        yield ac


async def confirm_transaction(client, dispatcher, amount_cents: int, kind: str,
                              headers: dict | None = None):
    """Initiate a transaction and verify it with the emailed code."""
    initiated = await client.post(
        "/transactions/initiate",
        json={"amount_cents": amount_cents, "type": kind},
        headers=headers,
    )
    assert initiated.status_code == 201, initiated.text
    return await client.post(
        "/transactions/verify",
        json={
            "transaction_id": initiated.json()["transaction_id"],
            "code": dispatcher.last_code(),
        },
        headers=headers,
    )


@pytest.fixture
def fund_account(client, dispatcher):
    """Deposit into a member's account through the full initiate/verify flow."""
    async def _fund(amount_cents: int, headers: dict | None = None):
        response = await confirm_transaction(client, dispatcher, amount_cents, "deposit", headers)
        assert response.status_code == 200, response.text
        return response.json()
    return _fund


@pytest.fixture
def confirm(client, dispatcher):
    """Initiate + verify in one call; returns the verify response."""
    async def _confirm(amount_cents: int, kind: str, headers: dict | None = None):
        return await confirm_transaction(client, dispatcher, amount_cents, kind, headers)
    return _confirm
