import os

os.environ["APP_ENV"] = "test"
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["LOG_JSON"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "true"

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from chandir.core.application import create_application
from chandir.core.config.settings import settings
from chandir.infrastructure.cache import CacheTier
from chandir.infrastructure.database import create_db_and_tables
from chandir.infrastructure.dependency_injection.container import DirectoryContainer

class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def redis():
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest_asyncio.fixture
async def engine(tmp_path):
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chandir.db'}")
    await create_db_and_tables(async_engine)
    try:
        yield async_engine
    finally:
        await async_engine.dispose()


@pytest.fixture
def cache(redis, clock):
    return CacheTier(redis, prefix="nav", clock=clock)


@pytest_asyncio.fixture
async def container(engine, redis, cache):
    return DirectoryContainer.from_components(settings, engine=engine, redis=redis, cache=cache)


@pytest.fixture
def directory(container):
    return container.directory


@pytest.fixture
def weight_engine(container):
    return container.weight_engine


@pytest.fixture
def like_ledger(container):
    return container.like_ledger


@pytest.fixture
def channel_repository(container):
    return container.directory.channels


@pytest.fixture
def app(container):
    application = create_application()
    application.state.container = container
    return application


@pytest_asyncio.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
