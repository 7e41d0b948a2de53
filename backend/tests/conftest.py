"""pytest fixtures for artindex backend tests.

Provides:
- postgres_url: Session-scoped testcontainer PostgreSQL instance (TEST_DATABASE=postgres)
- utc_timezone: Autouse fixture enforcing UTC timezone
- session_factory: Function-scoped session factory on freshly created tables
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- settings: Settings with pacing disabled and a fake OpenSea key

By default each test runs against its own SQLite file (aiosqlite), which needs
no Docker. Set TEST_DATABASE=postgres to run the same suite on PostgreSQL 17.
"""

import os

os.environ.setdefault("APP_ENV", "test")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from testcontainers.postgres import PostgresContainer

import artindex.models  # noqa: F401
from artindex.core.config import Settings
from artindex.core.database import setup_db_session
from artindex.uow import create_uow_factory

# Dependent tables first
TABLES = (
    "artist_artworks",
    "artist_collections",
    "artwork_index",
    "artworks",
    "collections",
    "artist_wallets",
    "artists",
    "system_state",
)


@pytest.fixture(scope="session")
def postgres_url():
    """Provide a session-scoped PostgreSQL URL, or None for SQLite runs.

    The container starts once per test session and is reused across tests.
    """
    if os.environ.get("TEST_DATABASE") != "postgres":
        yield None
        return

    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="test_artindex",
    ) as container:
        yield container.get_connection_url(driver="psycopg")


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def session_factory(postgres_url, tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Provide a session factory bound to empty tables.

    SQLite runs get a new database file per test. PostgreSQL runs share the
    container and have every table emptied after each test.
    """
    db_url = postgres_url or f"sqlite+aiosqlite:///{tmp_path / 'artindex_test.db'}"
    factory = setup_db_session(db_url, pool_size=5)
    engine = factory.kw["bind"]

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield factory

    if postgres_url:
        async with engine.begin() as conn:
            for table in TABLES:
                await conn.execute(text(f"DELETE FROM {table}"))
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory.

    Each UoW gets its own session from the same engine as the session fixture.
    """
    return create_uow_factory(
        async_sessionmaker(bind=session_factory.kw["bind"], expire_on_commit=False)
    )


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: no pacing, sequential promotion, one indexed wallet."""
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        APP_ENV="test",
        DATABASE_URL="sqlite+aiosqlite://",
        OPENSEA_API_KEY="test-key",
        WALLET_DELAY_SECONDS=0,
        OBSERVATION_DELAY_SECONDS=0,
        PROMOTION_CONCURRENCY=1,
        QUEUE_BATCH_SIZE=50,
        PROMOTION_WORKER_ENABLED=False,
        INDEXED_WALLETS=[
            {"address": "0x00000000000000000000000000000000000a11ce", "blockchain": "ethereum"}
        ],
    )
