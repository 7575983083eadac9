import os

os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
import pytest_asyncio

from habitflow.db.database import SQLITE_MEMORY_URL, build_engine, build_sessionmaker, init_models
from habitflow.utils.feature_flags import refresh_feature_flag_cache

_FLAG_ENV = ("LLM_FEATURES_ENABLED", "LLM_CACHE_ENABLED")


@pytest.fixture(autouse=True)
def reset_flags(monkeypatch):
    """Clear flag env + cached values for each test to avoid cross-contamination."""
    for env_name in _FLAG_ENV:
        monkeypatch.delenv(env_name, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest_asyncio.fixture
async def engine():
    # fresh in-memory database per test
    eng = build_engine(SQLITE_MEMORY_URL)
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def owner_id():
    return "user-1"
