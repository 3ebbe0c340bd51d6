"""
Shared test configuration and fixtures for XRPC client tests.

Provides the in-process XRPC service, HTTP session, storage, Redis and
PostgreSQL fixtures used across the test files.
"""

import os
import uuid

import pytest
import pytest_asyncio
from aiohttp import ClientSession
from aiohttp.test_utils import TestServer
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from social.graze.xrpc.lexicon import CREATE_SESSION, REFRESH_SESSION
from social.graze.xrpc.model.base import Base
from social.graze.xrpc.model.stored_session import StoredSession  # noqa: F401
from tests.test_helpers import FakeXrpcService, RecordingStorage, make_session, session_body

# Try to import Redis testing dependencies
try:
    import fakeredis.aioredis

    REDIS_AVAILABLE = True
except ImportError:
    fakeredis = None
    REDIS_AVAILABLE = False


@pytest_asyncio.fixture
async def xrpc_service():
    """Run a scripted XRPC service on a local port."""
    service = FakeXrpcService()
    server = TestServer(service.application())
    await server.start_server()
    service.url = str(server.make_url("/")).rstrip("/")
    yield service
    await server.close()


@pytest_asyncio.fixture
async def http_session():
    async with ClientSession() as session:
        yield session


@pytest.fixture
def storage() -> RecordingStorage:
    """Storage holding a session with access-1 / refresh-1 tokens."""
    return RecordingStorage(make_session())


@pytest.fixture
def refresh_ok(xrpc_service):
    """Queue a successful refreshSession response issuing access-2 / refresh-2."""
    xrpc_service.enqueue(REFRESH_SESSION, 200, session_body("access-2", "refresh-2"))
    return xrpc_service


@pytest.fixture
def login_ok(xrpc_service):
    """Queue a successful createSession response."""
    xrpc_service.enqueue(
        CREATE_SESSION, 200, session_body("access-1", "refresh-1", active=True)
    )
    return xrpc_service


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide fake Redis client for unit tests."""
    if not REDIS_AVAILABLE or fakeredis is None:
        pytest.skip("fakeredis not available")

    client = fakeredis.aioredis.FakeRedis(decode_responses=False)
    yield client
    await client.flushall()
    await client.aclose()


# Test database configuration
TEST_DB_HOST = os.getenv("TEST_DB_HOST", "postgres")
TEST_DB_PORT = os.getenv("TEST_DB_PORT", "5432")
TEST_DB_USER = os.getenv("TEST_DB_USER", "postgres")
TEST_DB_PASSWORD = os.getenv("TEST_DB_PASSWORD", "password")

# Admin URL for database creation/deletion (connects to postgres database)
ADMIN_DATABASE_URL = f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@{TEST_DB_HOST}:{TEST_DB_PORT}/postgres"


async def check_postgres_available():
    """Check if PostgreSQL is available for testing."""
    try:
        admin_engine = create_async_engine(ADMIN_DATABASE_URL, echo=False)
        async with admin_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await admin_engine.dispose()
        return True
    except Exception:
        return False


@pytest_asyncio.fixture(scope="function")
async def test_database():
    """Create and clean up test database for each test function."""
    if not await check_postgres_available():
        pytest.skip("PostgreSQL database not available for testing")

    # Use a unique database name for each test to avoid conflicts
    unique_db_name = f"xrpc_test_{uuid.uuid4().hex[:8]}"
    unique_db_url = (
        f"postgresql+asyncpg://{TEST_DB_USER}:{TEST_DB_PASSWORD}@"
        f"{TEST_DB_HOST}:{TEST_DB_PORT}/{unique_db_name}"
    )

    admin_engine = create_async_engine(
        ADMIN_DATABASE_URL, echo=False, isolation_level="AUTOCOMMIT"
    )

    try:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"CREATE DATABASE {unique_db_name}"))

        yield unique_db_url

    finally:
        async with admin_engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {unique_db_name}"))
        await admin_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def engine(test_database):
    """Create async SQLAlchemy engine with the session table."""
    engine = create_async_engine(test_database, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def database_session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
