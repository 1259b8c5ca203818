"""Application lifecycle management.

Builds the service container on startup (unless one was attached beforehand,
as the test suite does) and closes its connections on shutdown.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from chandir.core.config.settings import settings
from chandir.core.logging import logger
from chandir.infrastructure.database import check_database_health, create_db_and_tables
from chandir.infrastructure.dependency_injection.container import build_container


def create_lifespan_manager():
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: build the container, probe the database, bootstrap tables
        outside production. Shutdown: close Redis and dispose the engine.

        Raises:
            RuntimeError: If the database is unavailable during startup
        """
        owned = getattr(app.state, "container", None) is None
        if owned:
            container = build_container(settings)
            if not await check_database_health(container.engine):
                logger.error("database_unavailable_on_startup")
                await container.aclose()
                raise RuntimeError("Database unavailable")
            if not settings.is_production:
                await create_db_and_tables(container.engine)
            app.state.container = container
        logger.info("application_startup", env=settings.APP_ENV, version=settings.VERSION)

        yield

        if owned:
            await app.state.container.aclose()
            app.state.container = None
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan
