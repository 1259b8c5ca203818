"""
Asynchronous Database Utilities Module

Builds the SQLAlchemy async engine and session factory used by the repository
adapters, plus the startup health probe and the table bootstrap used by tests
and first boot. Schema migrations are owned by the deployment, not this core.

**Security Note**: Ensure that the database connection URL (DATABASE_URL) is
configured for SSL/TLS when connecting over untrusted networks, and never log
it: the assembled URL contains the password.

Key Components:
    - create_engine_from_settings: Engine with pool settings applied.
    - create_session_factory: `async_sessionmaker` bound to an engine.
    - check_database_health: ``SELECT 1`` probe with tenacity retries.
    - create_db_and_tables: ``metadata.create_all`` on the async engine.
"""

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

# Registers the table models on SQLModel.metadata.
from chandir.domain import entities  # noqa: F401

logger = get_logger(__name__)


def create_engine_from_settings(settings) -> AsyncEngine:
    """Create the async engine; pool options are skipped for SQLite URLs."""
    url = settings.DATABASE_URL
    options = {"echo": False, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.POSTGRES_POOL_SIZE,
            max_overflow=settings.POSTGRES_MAX_OVERFLOW,
            pool_timeout=settings.POSTGRES_POOL_TIMEOUT,
        )
    return create_async_engine(url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OperationalError),
    reraise=True,
)
async def _ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def check_database_health(engine: AsyncEngine) -> bool:
    """
    Performs a health check on the database connection.

    Transient `OperationalError`s are retried with exponential backoff before
    the probe reports the database as unhealthy.

    Returns:
        bool: True if database is healthy and responsive, False otherwise.
    """
    start_time = time.time()
    try:
        await _ping(engine)
    except Exception as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
            execution_time=time.time() - start_time,
        )
        return False
    logger.debug("database_health_check_success", execution_time=time.time() - start_time)
    return True


async def create_db_and_tables(engine: AsyncEngine) -> None:
    """
    Creates database tables with logging.
    """
    start_time = time.time()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info(
        "database_tables_created",
        execution_time=time.time() - start_time,
        tables=list(SQLModel.metadata.tables.keys()),
    )
