"""
Database engine and session management.

Builds the async SQLAlchemy engine from environment configuration with
test fallbacks (SQLite in-memory through aiosqlite) and exposes session
helpers for callers that own the request lifecycle.
"""
import os
import sys
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while an individual test is running,
    so module import during collection also checks ``sys.modules``.
    ``PYTEST_RUNNING=1`` forces the test behaviour explicitly.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if "pytest" in sys.modules:
        return True
    return False


def _to_async_driver(url: str) -> str:
    """Swap sync driver prefixes for their async counterparts."""
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("postgresql+psycopg2://"):
        return "postgresql+asyncpg://" + url[len("postgresql+psycopg2://"):]
    if url.startswith("sqlite:///") or url.startswith("sqlite+pysqlite:///"):
        return "sqlite+aiosqlite:///" + url.split(":///", 1)[1]
    return url


def resolve_database_url() -> str:
    # Test override strategy:
    # 1. HABITFLOW_TEST_DB wins when set.
    # 2. Under pytest without an explicit URL, use in-memory sqlite.
    # 3. Otherwise DATABASE_URL, else the individual POSTGRES_* components.
    explicit_test_db = os.getenv("HABITFLOW_TEST_DB")
    if explicit_test_db:
        return _to_async_driver(explicit_test_db)
    if _is_pytest_runtime() and not os.getenv("DATABASE_URL"):
        return SQLITE_MEMORY_URL

    if os.getenv("DATABASE_URL"):
        return _to_async_driver(os.getenv("DATABASE_URL"))

    db_user = os.getenv("POSTGRES_USER")
    db_password = os.getenv("POSTGRES_PASSWORD")
    db_host = os.getenv("POSTGRES_HOST")
    db_port = os.getenv("POSTGRES_PORT")
    db_name = os.getenv("POSTGRES_DB")

    if not all([db_user, db_password, db_host, db_port, db_name]):
        missing = []
        if not db_user: missing.append("POSTGRES_USER")
        if not db_password: missing.append("POSTGRES_PASSWORD")
        if not db_host: missing.append("POSTGRES_HOST")
        if not db_port: missing.append("POSTGRES_PORT")
        if not db_name: missing.append("POSTGRES_DB")
        raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")

    return f"postgresql+asyncpg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine; in-memory sqlite shares one connection across sessions."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, pool_pre_ping=True)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Purified results are built before commit, but keep attributes loaded
    # after commit so refresh-free access never triggers implicit IO.
    return async_sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


DATABASE_URL = resolve_database_url()
engine = build_engine(DATABASE_URL)
SessionLocal = build_sessionmaker(engine)


async def init_models(bind: AsyncEngine = None) -> None:
    """Create all tables (used by tests and local sqlite setups)."""
    from habitflow.db import models  # local import to avoid circular import at module load

    async with (bind or engine).begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a request-scoped session and close it when finished."""
    async with SessionLocal() as session:
        yield session
