"""
Test configuration and fixtures for the portal

Every test gets a fresh in-memory SQLite database with all tables created
from the models. API tests go through httpx against the ASGI app with the
database dependency pointed at that engine.

Usage:
    pytest tests/
    pytest tests/unit
    pytest -m integration
"""

import os
from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator, Callable, Dict
from uuid import uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# The rate limiter stays a no-op without Redis
os.environ.pop("REDIS_URL", None)

import portal.models  # noqa: F401,E402
from portal.core.auth import create_access_token, get_password_hash  # noqa: E402
from portal.core.timeutils import utcnow  # noqa: E402
from portal.db.base import Base  # noqa: E402
from portal.db.session import get_db  # noqa: E402
from portal.main import app  # noqa: E402
from portal.models.enums import (  # noqa: E402
    AgentStatus, MembershipStatus, ProfileRole, RoleCategory,
)
from portal.models.profile import Profile  # noqa: E402
from portal.repos import membership_repo, profile_repo  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
async def db_engine():
    """
    In-memory SQLite engine with the schema created from the models.

    StaticPool keeps a single connection so every session sees the same
    database.
    """
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data; helpers commit so requests can see it."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_app(session_factory) -> AsyncGenerator[FastAPI, None]:
    """App with the database dependency overridden to the test engine."""
    async def get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = get_test_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


# Test data fixtures

@pytest.fixture
def test_password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def make_profile(async_session: AsyncSession) -> Callable:
    """Factory creating a committed profile with a known password."""
    async def _make(role: str = ProfileRole.MEMBER.value, full_name: str = "Test User", **fields) -> Profile:
        email = fields.pop("email", f"{uuid4().hex[:10]}@example.com")
        profile = await profile_repo.create_profile(
            async_session,
            email=email,
            full_name=full_name,
            role=role,
            password_hash=get_password_hash(TEST_PASSWORD),
            **fields
        )
        await async_session.commit()
        return profile

    return _make


@pytest.fixture
def make_member(async_session: AsyncSession, make_profile) -> Callable:
    """Factory creating a member with an active membership valid for a year."""
    async def _make(full_name: str = "Rahim Ahmed", active: bool = True, **fields) -> Profile:
        profile = await make_profile(ProfileRole.MEMBER.value, full_name=full_name, **fields)
        now = utcnow()
        await membership_repo.create_membership(
            async_session,
            profile.id,
            status=MembershipStatus.ACTIVE.value if active else MembershipStatus.PENDING.value,
            membership_number=100000 + int(uuid4().int % 900000),
            fee_amount=Decimal("1000"),
            fee_currency="BDT",
            start_date=now if active else None,
            end_date=now + timedelta(days=365) if active else None,
            activated_at=now if active else None
        )
        await async_session.commit()
        return profile

    return _make


@pytest.fixture
async def chairman(async_session: AsyncSession, make_profile) -> Profile:
    profile = await make_profile(ProfileRole.SUPER_ADMIN.value, full_name="Board Chairman")
    await profile_repo.create_employee(
        async_session,
        profile.id,
        RoleCategory.CHAIRMAN.value,
        department="Executive",
        full_name="Board Chairman",
        employee_code="CHAIRMAN-001"
    )
    await async_session.commit()
    return profile


@pytest.fixture
async def manager_admin(make_profile) -> Profile:
    return await make_profile(ProfileRole.MANAGER_ADMIN.value, full_name="Support Manager")


@pytest.fixture
async def member(make_member) -> Profile:
    return await make_member()


@pytest.fixture
async def agent(make_profile) -> Profile:
    return await make_profile(
        ProfileRole.AGENT.value, full_name="Field Agent", agent_status=AgentStatus.ACTIVE.value
    )


@pytest.fixture
async def bd_settings(async_session: AsyncSession):
    row = await membership_repo.upsert_country_settings(
        async_session,
        "BD",
        membership_fee=Decimal("1000"),
        currency_code="BDT",
        prize_pool_percentage=Decimal("30"),
        referral_bonus_amount=Decimal("100")
    )
    await async_session.commit()
    return row


@pytest.fixture
def auth_headers() -> Callable[[Profile], Dict[str, str]]:
    def _headers(profile: Profile) -> Dict[str, str]:
        token = create_access_token(data={"sub": str(profile.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


# Markers for different test types
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
