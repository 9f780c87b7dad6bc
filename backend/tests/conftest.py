"""
Test configuration and fixtures for Bridge Needs backend tests.
"""
import os
import pytest_asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from bridgeneeds.main import app
from bridgeneeds.db.base import Base, get_db, get_session_factory
from bridgeneeds.core.deps import get_payment_gateway
from bridgeneeds.core.security import get_password_hash, create_access_token
from bridgeneeds.models.user import User
from bridgeneeds.models.organization import Organization
from bridgeneeds.models.campaign import Campaign
from bridgeneeds.services.payment import PaymentSimulator


# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and payment gateway overrides."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_payment_gateway] = lambda: PaymentSimulator(processing_delay=0)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# Donation services read through their own sessions, so fixtures commit.

@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a donor."""
    user = User(
        email="donor@example.com",
        name="Dana Donor",
        password_hash=get_password_hash("TestPass123"),
        verified=True,
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user_token(test_user: User) -> str:
    """Create an access token for the test user."""
    return create_access_token(test_user.id, test_user.email)


@pytest_asyncio.fixture
async def auth_headers(test_user_token: str) -> dict:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {test_user_token}"}


@pytest_asyncio.fixture
async def org_owner(db_session: AsyncSession) -> User:
    """Create an organization account."""
    user = User(
        email="owner@example.com",
        name="Olive Owner",
        password_hash=get_password_hash("OwnerPass123"),
        verified=True,
        account_type="organization",
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def owner_headers(org_owner: User) -> dict:
    token = create_access_token(org_owner.id, org_owner.email, "organization")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession, org_owner: User) -> Organization:
    """Create an organization accepting cash and physical donations."""
    org = Organization(
        name="Harbor Food Bank",
        slug="harbor-food-bank",
        description="A test organization for testing",
        owner_id=org_owner.id,
        accepts_cash_donations=True,
        accepts_physical_donations=True,
        physical_donation_categories=["food", "clothing"],
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(org)
    await db_session.commit()
    return org


@pytest_asyncio.fixture
async def test_campaign(db_session: AsyncSession, test_org: Organization) -> Campaign:
    """Create a campaign that inherits the organization's donation settings."""
    campaign = Campaign(
        organization_id=test_org.id,
        title="Winter Coat Drive",
        slug="winter-coat-drive",
        goal_amount=Decimal("5000.00"),
        status="active",
        created=datetime.now(timezone.utc),
        updated=datetime.now(timezone.utc),
    )
    db_session.add(campaign)
    await db_session.commit()
    return campaign
