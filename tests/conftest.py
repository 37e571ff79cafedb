"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# Settings are read at import time; tests never reach a real server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-unit-tests-only")

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from crm_finance.main import app
from crm_finance.models.base import Base
from crm_finance.db.session import get_db
from crm_finance.core.permissions import Role


# WHY: SQLite in memory keeps tests free of an external database; StaticPool
# keeps the single in-memory database alive across connections.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope gives each test a fresh schema. The connect/begin
    listeners hand transaction control to SQLAlchemy so SAVEPOINTs (used by
    invoice numbering and the audit service) behave as on PostgreSQL.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client sharing the test session with the app.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_org(db_session: AsyncSession):
    """
    Create a test organization.

    WHY: Every finance record belongs to an organization.
    """
    from tests.factories import OrganizationFactory

    return await OrganizationFactory.create(db_session, name="Test Organization")


@pytest_asyncio.fixture
async def other_org(db_session: AsyncSession):
    """A second tenant for isolation tests."""
    from tests.factories import OrganizationFactory

    return await OrganizationFactory.create(db_session, name="Other Organization")


@pytest_asyncio.fixture
async def test_client_record(db_session: AsyncSession, test_org):
    from tests.factories import ClientFactory

    return await ClientFactory.create(db_session, org_id=test_org.id, email="buyer@example.com")


@pytest_asyncio.fixture
async def test_gateway(db_session: AsyncSession, test_org):
    from tests.factories import PaymentGatewayFactory

    return await PaymentGatewayFactory.create(db_session, org_id=test_org.id)


@pytest.fixture
def admin_headers(test_org) -> dict:
    from tests.factories import auth_headers

    return auth_headers(test_org.id, Role.ADMIN, user_id=1)
